import datetime
from decimal import Decimal

from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from rego_registry.core.models.base import TradingApplicationStatus
from rego_registry.core.schemas import CamelModel


class RegoTradeInfoBase(SQLModel):
    """A consumer's request to buy part of a REGO group.

    Leaves the pending state exactly once: approved by the selling provider,
    rejected with a reason, or cancelled by the consumer.
    """

    provider_id: int = Field(foreign_key="provider.id", index=True)
    consumer_id: int = Field(foreign_key="consumer.id", index=True)
    plant_id: int = Field(foreign_key="plant.id")
    rego_group_id: int = Field(foreign_key="rego_group.id", index=True)
    identification_number: str = Field(
        description="Identification number of the REGO group being bought."
    )
    trading_application_status: TradingApplicationStatus = Field(
        default=TradingApplicationStatus.PENDING
    )
    buying_amount: int = Field(gt=0)
    buying_price: Decimal = Field(max_digits=18, decimal_places=3)
    buying_application_date: datetime.datetime
    trade_completed_date: datetime.datetime | None = Field(default=None)
    rejected_reason: str | None = Field(default=None)
    identification_start_number: int | None = Field(
        default=None,
        description="First unit sequence number transferred when the trade was approved.",
    )
    identification_end_number: int | None = Field(default=None)


class RegoTradeInfoRead(CamelModel):
    id: int
    provider_id: int
    consumer_id: int
    plant_id: int
    rego_group_id: int
    identification_number: str
    trading_application_status: TradingApplicationStatus
    buying_amount: int
    buying_price: Decimal
    buying_application_date: datetime.datetime
    trade_completed_date: datetime.datetime | None = None
    rejected_reason: str | None = None
    identification_start_number: int | None = None
    identification_end_number: int | None = None


class RegoTradeInfoListRead(RegoTradeInfoRead):
    consumer_account_name: str | None = None
    corporation_name: str | None = None
    plant_name: str | None = None
    electricity_production_period: str | None = None


class RegoBuyingRequest(CamelModel):
    rego_group_id: int
    buying_amount: int = PydanticField(gt=0)
    buying_price: Decimal = PydanticField(ge=0)


class RegoTradeAcceptRequest(CamelModel):
    rego_trade_info_id: int


class RegoTradeRefuseRequest(CamelModel):
    rego_trade_info_id: int
    rejected_reason: str = PydanticField(min_length=1, max_length=500)


class RegoTradeCancelRequest(CamelModel):
    rego_trade_info_id: int


class RegoTradeInfoQuery(CamelModel):
    trading_application_status: TradingApplicationStatus | None = None
    identification_number: str | None = None
    electricity_production_period: str | None = None
    buyer_name: str | None = None


class RegoTradeInfoStatisticsRead(CamelModel):
    id: int
    window_start: datetime.datetime
    window_end: datetime.datetime
    trade_count: int
    total_quantity: int
    average_price: Decimal
    created_at: datetime.datetime


class RegoTradeAcceptResult(CamelModel):
    rego_trade_info: RegoTradeInfoRead
    rego_group_id: int
    remaining_generation_amount: int
    buying_rego_id: int
    identification_start_number: int
    identification_end_number: int
