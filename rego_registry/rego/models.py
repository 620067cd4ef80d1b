import datetime
from decimal import Decimal

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Session, SQLModel, func, select

from rego_registry import utils
from rego_registry.rego.schemas import RegoGroupBase


class RegoGroup(RegoGroupBase, utils.ActiveRecord, table=True):
    __tablename__: str = "rego_group"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)

    @classmethod
    def identification_number_exists(
        cls, identification_number: str, session: Session
    ) -> bool:
        count = session.exec(
            select(func.count())
            .select_from(cls)
            .where(cls.identification_number == identification_number)
        ).one()
        return count > 0


class Rego(utils.ActiveRecord, table=True):
    """A single certificate unit. Units only record who owns them; quantities are
    tracked on the group and on buying holdings."""

    __tablename__: str = "rego"  # type: ignore
    __table_args__ = (UniqueConstraint("rego_group_id", "sequence_number"),)

    id: int | None = Field(default=None, primary_key=True)
    rego_group_id: int = Field(foreign_key="rego_group.id", index=True)
    consumer_id: int | None = Field(default=None, foreign_key="consumer.id", index=True)
    sequence_number: int = Field(ge=1)
    identification_number: str


class ProviderPlantCarriedAmount(SQLModel, table=True):
    """Fractional remainder of a stakeholder's share of a plant's generation that
    has not yet amounted to a whole certificate."""

    __tablename__: str = "provider_plant_carried_amount"  # type: ignore

    provider_id: int = Field(foreign_key="provider.id", primary_key=True)
    plant_id: int = Field(foreign_key="plant.id", primary_key=True)
    carried_over_power_gen_amount: Decimal = Field(
        default=Decimal("0"), max_digits=18, decimal_places=3
    )
    updated_at: datetime.datetime = Field(default_factory=utils.utc_datetime_now)

    @classmethod
    def get(
        cls,
        provider_id: int,
        plant_id: int,
        session: Session,
        for_update: bool = False,
    ) -> "ProviderPlantCarriedAmount | None":
        return session.get(
            cls, (provider_id, plant_id), with_for_update=True if for_update else None
        )
