import datetime
from decimal import Decimal

from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from rego_registry.core.models.base import (
    RegoStatus,
    RegoTradingStatus,
    StakeholderType,
)
from rego_registry.core.schemas import CamelModel


class RegoGroupBase(SQLModel):
    """A REGO group is the unit of issuance: one batch of certificates issued to a
    single stakeholder from one generation record of one plant.

    The group moves through (status, trading status) pairs as it is listed and
    sold. Its remaining generation amount shrinks as trades are accepted and it
    becomes used/end when nothing is left to sell.
    """

    provider_id: int = Field(
        foreign_key="provider.id",
        index=True,
        description="The stakeholder the batch was issued to: the plant owner, the nation, or a local government.",
    )
    plant_id: int = Field(foreign_key="plant.id", index=True)
    power_generation_id: int = Field(foreign_key="power_generation.id", index=True)
    stakeholder_type: StakeholderType = Field(
        description="Which share of the generation record this batch represents."
    )
    identification_number: str = Field(
        unique=True,
        index=True,
        description="""Globally unique batch identifier: the plant code followed by a random base62
        suffix. Individual certificate units are numbered '<identification_number>-<sequence>'.""",
    )

    ### Mutable Attributes ###
    status: RegoStatus = Field(default=RegoStatus.ACTIVE)
    trading_status: RegoTradingStatus = Field(default=RegoTradingStatus.BEFORE)
    remaining_generation_amount: int = Field(
        ge=0,
        description="Units not yet sold. Never negative and never above the issued amount.",
    )
    transaction_registration_date: datetime.datetime | None = Field(
        default=None,
        description="Set when the batch is listed for sale.",
    )

    ### Issuance Attributes ###
    electricity_production_period: str = Field(max_length=7)
    issued_generation_amount: int = Field(ge=0)
    issued_date: datetime.datetime
    expired_date: datetime.datetime


class RegoGroupRead(CamelModel):
    id: int
    provider_id: int
    plant_id: int
    power_generation_id: int
    stakeholder_type: StakeholderType
    identification_number: str
    status: RegoStatus
    trading_status: RegoTradingStatus
    electricity_production_period: str
    issued_generation_amount: int
    remaining_generation_amount: int
    issued_date: datetime.datetime
    expired_date: datetime.datetime
    transaction_registration_date: datetime.datetime | None = None


class RegoGroupMarketRead(RegoGroupRead):
    account_name: str | None = None
    plant_name: str | None = None
    energy_source: str | None = None


class RegoRead(CamelModel):
    id: int
    rego_group_id: int
    sequence_number: int
    identification_number: str
    consumer_id: int | None = None


class RegoIssueRequest(CamelModel):
    power_generation_ids: list[int] = PydanticField(
        description="Generation records to issue certificates for; processed in production period order."
    )


class RegoIssueResult(CamelModel):
    rego_groups: list[RegoGroupRead]
    issued_unit_count: int
    carried_over_amounts: dict[str, Decimal] = PydanticField(
        default_factory=dict,
        description="Updated remainder per '<provider id>:<plant id>' pair.",
    )


class RegoSellRequest(CamelModel):
    rego_group_ids: list[int]


class RegoGroupQuery(CamelModel):
    status: RegoStatus | None = None
    trading_status: RegoTradingStatus | None = None
    plant_name: str | None = None
    electricity_production_period: str | None = None
    provider_id: int | None = None
