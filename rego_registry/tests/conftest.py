from decimal import Decimal
from typing import Any, Callable, Generator

import pytest
from dotenv import load_dotenv
from sqlalchemy.engine.base import Engine
from sqlmodel import Session, SQLModel
from starlette.testclient import TestClient

from rego_registry.authentication.services import get_password_hash
from rego_registry.consumer.models import Consumer
from rego_registry.core.database import db
from rego_registry.core.models.base import AccountType, IssuedStatus, Region
from rego_registry.main import app
from rego_registry.plant.models import Plant
from rego_registry.power_generation.models import PowerGeneration
from rego_registry.provider.models import Provider
from rego_registry.rego.models import RegoGroup
from rego_registry.rego.services import issue_regos, list_rego_groups_for_sale
from rego_registry.rego_trade_info.models import RegoTradeInfo
from rego_registry.rego_trade_info.schemas import RegoBuyingRequest
from rego_registry.rego_trade_info.services import request_buying
from rego_registry.utils import ActiveRecord

load_dotenv()

TEST_PASSWORD = "password"


@pytest.fixture()
def api_client(
    write_session: Session, read_session: Session
) -> Generator[TestClient, None, None]:
    """API Client for testing routes"""

    def get_write_session_override():
        assert write_session.is_active
        return write_session

    def get_read_session_override():
        assert read_session.is_active
        return read_session

    # Set dependency overrides
    app.dependency_overrides[db.get_write_session] = get_write_session_override
    app.dependency_overrides[db.get_read_session] = get_read_session_override

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_engine() -> Generator[Engine, None, None]:
    """
    Creates an ephemeral in-memory SQLite database with every table for a single test
    """
    db_client = db.DButils(test=True)
    db_client.create_db_and_tables()

    yield db_client.engine

    SQLModel.metadata.drop_all(db_client.engine)
    db_client.engine.dispose()


@pytest.fixture(scope="function")
def write_session(db_engine: Engine) -> Generator[Session, None, None]:
    session = Session(db_engine)

    yield session

    session.close()


@pytest.fixture(scope="function")
def read_session(write_session: Session) -> Session:
    """Reads and writes share one database, so the read session is the write session."""
    return write_session


def add_entity(entity: ActiveRecord, write_session: Session):
    write_session.add(entity)
    write_session.commit()
    write_session.refresh(entity)

    # check that the entity has an ID
    assert entity.id is not None  # type: ignore

    return entity


@pytest.fixture()
def provider_factory(write_session: Session) -> Any:
    """Factory function to create providers of any account type."""

    def _create_provider(
        login_id: str,
        account_type: AccountType = AccountType.POWER_BUSINESS,
        region: Region | None = None,
    ) -> Provider:
        provider_dict = {
            "login_id": login_id,
            "account_name": f"fake_provider_{login_id}",
            "account_type": account_type,
            "region": region,
            "hashed_password": get_password_hash(TEST_PASSWORD),
        }
        return add_entity(Provider.model_validate(provider_dict), write_session)

    return _create_provider


@pytest.fixture()
def consumer_factory(write_session: Session) -> Any:
    def _create_consumer(login_id: str) -> Consumer:
        consumer_dict = {
            "login_id": login_id,
            "account_name": f"fake_consumer_{login_id}",
            "corporation_name": f"{login_id} corp",
            "hashed_password": get_password_hash(TEST_PASSWORD),
        }
        return add_entity(Consumer.model_validate(consumer_dict), write_session)

    return _create_consumer


@pytest.fixture()
def plant_factory(write_session: Session) -> Any:
    """Factory function to create plants with given stakeholder percentages."""

    def _create_plant(
        provider: Provider,
        plant_code: str,
        percentages: tuple[str, str, str] = ("100", "0", "0"),
        region: Region = Region.JEJU,
    ) -> Plant:
        self_percent, nation_percent, local_percent = (Decimal(p) for p in percentages)
        plant_dict = {
            "provider_id": provider.id,
            "plant_code": plant_code,
            "plant_name": f"fake_plant_{plant_code}",
            "energy_source": "solar",
            "region": region,
            "self_supply_price": self_percent,
            "nation_supply_price": nation_percent,
            "local_government_supply_price": local_percent,
            "self_supply_price_percent": self_percent,
            "nation_supply_price_percent": nation_percent,
            "local_government_supply_price_percent": local_percent,
        }
        return add_entity(Plant.model_validate(plant_dict), write_session)

    return _create_plant


@pytest.fixture()
def power_generation_factory(write_session: Session) -> Any:
    def _create_power_generation(
        plant: Plant,
        electricity_production_period: str,
        power_generation_amount: Decimal,
    ) -> PowerGeneration:
        power_generation_dict = {
            "plant_id": plant.id,
            "electricity_production_period": electricity_production_period,
            "power_generation_amount": power_generation_amount,
            "issued_status": IssuedStatus.NO,
        }
        return add_entity(
            PowerGeneration.model_validate(power_generation_dict), write_session
        )

    return _create_power_generation


@pytest.fixture()
def auth_factory(api_client: TestClient) -> Callable[[str, str], str]:
    """Factory function to create access tokens through the login endpoints."""

    def _create_token(login_id: str, role: str = "provider") -> str:
        response = api_client.post(
            f"/auth/{role}/login",
            json={"loginId": login_id, "password": TEST_PASSWORD},
        )
        assert response.status_code == 200, response.json()
        return response.json()["data"]["accessToken"]

    return _create_token


@pytest.fixture()
def fake_db_provider(provider_factory) -> Provider:
    return provider_factory("solar_owner")


@pytest.fixture()
def fake_db_provider_2(provider_factory) -> Provider:
    return provider_factory("wind_owner")


@pytest.fixture()
def fake_db_nation(provider_factory) -> Provider:
    return provider_factory("nation", AccountType.NATION)


@pytest.fixture()
def fake_db_local_government(provider_factory) -> Provider:
    return provider_factory("jeju_gov", AccountType.LOCAL_GOVERNMENT, Region.JEJU)


@pytest.fixture()
def fake_db_consumer(consumer_factory) -> Consumer:
    return consumer_factory("buyer_one")


@pytest.fixture()
def fake_db_consumer_2(consumer_factory) -> Consumer:
    return consumer_factory("buyer_two")


@pytest.fixture()
def fake_db_shared_plant(
    plant_factory,
    fake_db_provider: Provider,
    fake_db_nation: Provider,
    fake_db_local_government: Provider,
) -> Plant:
    """A plant sharing its generation 60/30/10 between owner, nation and Jeju."""
    return plant_factory(fake_db_provider, "SHR", ("60", "30", "10"))


@pytest.fixture()
def fake_db_owner_plant(plant_factory, fake_db_provider: Provider) -> Plant:
    """A plant whose owner keeps all of its generation."""
    return plant_factory(fake_db_provider, "OWN")


@pytest.fixture()
def fake_db_power_generation(
    power_generation_factory, fake_db_shared_plant: Plant
) -> PowerGeneration:
    return power_generation_factory(fake_db_shared_plant, "2024-01", Decimal("100.555"))


@pytest.fixture()
def fake_db_rego_group(
    write_session: Session,
    power_generation_factory,
    fake_db_provider: Provider,
    fake_db_owner_plant: Plant,
) -> RegoGroup:
    """An owner REGO group of 5 units that has not been listed for sale."""
    power_generation = power_generation_factory(
        fake_db_owner_plant, "2024-03", Decimal("5")
    )
    result = issue_regos(fake_db_provider.id, [power_generation.id], write_session)
    return RegoGroup.by_id(result.rego_groups[0].id, write_session)


@pytest.fixture()
def fake_db_listed_rego_group(
    write_session: Session, fake_db_provider: Provider, fake_db_rego_group: RegoGroup
) -> RegoGroup:
    """The 5 unit owner REGO group, listed for sale."""
    list_rego_groups_for_sale(
        fake_db_provider.id, [fake_db_rego_group.id], write_session
    )
    return RegoGroup.by_id(fake_db_rego_group.id, write_session)


@pytest.fixture()
def trade_factory(write_session: Session) -> Any:
    def _create_trade(
        consumer: Consumer,
        rego_group: RegoGroup,
        buying_amount: int,
        buying_price: Decimal = Decimal("1000"),
    ) -> RegoTradeInfo:
        trade = request_buying(
            consumer.id,
            RegoBuyingRequest(
                rego_group_id=rego_group.id,
                buying_amount=buying_amount,
                buying_price=buying_price,
            ),
            write_session,
        )
        return RegoTradeInfo.by_id(trade.id, write_session)

    return _create_trade


@pytest.fixture()
def fake_db_trade(
    trade_factory, fake_db_consumer: Consumer, fake_db_listed_rego_group: RegoGroup
) -> RegoTradeInfo:
    """A pending request to buy all 5 units of the listed group."""
    return trade_factory(fake_db_consumer, fake_db_listed_rego_group, 5)


@pytest.fixture()
def provider_token(auth_factory, fake_db_provider: Provider) -> str:
    return auth_factory(fake_db_provider.login_id, "provider")


@pytest.fixture()
def consumer_token(auth_factory, fake_db_consumer: Consumer) -> str:
    return auth_factory(fake_db_consumer.login_id, "consumer")
