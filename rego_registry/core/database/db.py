from contextlib import contextmanager
from typing import Any, Generator
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from rego_registry.buying_rego import models as buying_rego_models
from rego_registry.consumer import models as consumer_models
from rego_registry.core.exceptions import (
    InternalError,
    RegoRegistryError,
    ResourceExhausted,
)
from rego_registry.logging_config import logger
from rego_registry.plant import models as plant_models
from rego_registry.power_generation import models as power_generation_models
from rego_registry.provider import models as provider_models
from rego_registry.rego import models as rego_models
from rego_registry.rego_confirmation import models as rego_confirmation_models
from rego_registry.rego_trade_info import models as rego_trade_info_models
from rego_registry.settings import settings

# Every table model is imported here so that metadata.create_all sees them
__all__ = [
    "SQLModel",
    "provider_models",
    "consumer_models",
    "plant_models",
    "power_generation_models",
    "rego_models",
    "rego_trade_info_models",
    "buying_rego_models",
    "rego_confirmation_models",
]


class DButils:
    def __init__(
        self,
        connection_str: str | None = None,
        db_test_fp: str | None = None,
        test: bool = False,
    ):
        if test:
            # In-memory unless a file is requested, shared across threads for TestClient
            self.connection_str = (
                f"sqlite:///{db_test_fp}" if db_test_fp else "sqlite://"
            )
            self.engine = create_engine(
                self.connection_str,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
            return

        self.connection_str = connection_str or settings.database_url

        parsed = urlparse(self.connection_str)
        redacted = self.connection_str
        if parsed.password:
            redacted = self.connection_str.replace(parsed.password, "********")
        logger.info(f"Database connection initialized: {redacted}")

        self.engine = create_engine(
            self.connection_str,
            pool_pre_ping=True,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
            echo=False,
        )

    def create_db_and_tables(self) -> None:
        SQLModel.metadata.create_all(self.engine)

    def yield_session(self) -> Generator[Session, None, None]:
        with Session(self.engine) as session:
            yield session

    def get_session(self) -> Session:
        return Session(self.engine)


# Initialising the DButil clients
db_name_to_client: dict[str, Any] = {}


def get_db_name_to_client() -> dict[str, Any]:
    global db_name_to_client

    if db_name_to_client == {}:
        # Reads and writes share one database so that locked re-reads see committed state
        db_client = DButils()
        db_name_to_client["db_read"] = db_client
        db_name_to_client["db_write"] = db_client

    return db_name_to_client


def get_write_session() -> Generator[Session, None, None]:
    """FastAPI dependency for a write database session."""
    yield from get_db_name_to_client()["db_write"].yield_session()


def get_read_session() -> Generator[Session, None, None]:
    """FastAPI dependency for a read database session."""
    yield from get_db_name_to_client()["db_read"].yield_session()


@contextmanager
def transaction(write_session: Session) -> Generator[Session, None, None]:
    """Run the enclosed statements as a single unit of work.

    Commits when the block completes and rolls back everything written inside it
    on any exception. Pool saturation surfaces as a retryable ResourceExhausted;
    other database failures are logged and surfaced as a generic InternalError.
    """
    try:
        yield write_session
        write_session.commit()
    except RegoRegistryError:
        write_session.rollback()
        raise
    except PoolTimeoutError as e:
        write_session.rollback()
        logger.error(f"Database connection pool exhausted: {e}")
        raise ResourceExhausted(
            "The service is busy. Please retry the request shortly."
        ) from e
    except SQLAlchemyError as e:
        write_session.rollback()
        logger.exception("Database error, transaction rolled back")
        raise InternalError("The request could not be completed.") from e
    except Exception:
        write_session.rollback()
        raise
