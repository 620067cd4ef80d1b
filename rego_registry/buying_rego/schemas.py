import datetime

from sqlmodel import Field, SQLModel

from rego_registry.core.models.base import RegoStatus
from rego_registry.core.schemas import CamelModel


class BuyingRegoBase(SQLModel):
    """A consumer's holding of a contiguous range of units from one REGO group.

    Redeeming part of a holding shrinks it from the front of its range and
    records the consumed part as a separate holding with status used.
    """

    consumer_id: int = Field(foreign_key="consumer.id", index=True)
    rego_group_id: int = Field(foreign_key="rego_group.id", index=True)
    rego_trade_info_id: int | None = Field(
        default=None,
        foreign_key="rego_trade_info.id",
        description="The approved trade that created the holding, inherited by split-off parts.",
    )
    identification_number: str = Field(
        description="Identification number of the REGO group the units belong to."
    )
    identification_start_number: int = Field(
        ge=1, description="First unit sequence number held, inclusive."
    )
    identification_end_number: int = Field(
        ge=1, description="Last unit sequence number held, inclusive."
    )
    buying_amount: int = Field(ge=0)
    rego_status: RegoStatus = Field(default=RegoStatus.ACTIVE)


class BuyingRegoRead(CamelModel):
    id: int
    consumer_id: int
    rego_group_id: int
    rego_trade_info_id: int | None = None
    identification_number: str
    identification_start_number: int
    identification_end_number: int
    buying_amount: int
    rego_status: RegoStatus
    created_at: datetime.datetime


class BuyingRegoListRead(BuyingRegoRead):
    plant_id: int | None = None
    plant_name: str | None = None
    energy_source: str | None = None
    electricity_production_period: str | None = None
    expired_date: datetime.datetime | None = None
