import datetime
from decimal import Decimal

from sqlmodel import Field, Session, select

from rego_registry import utils
from rego_registry.rego_trade_info.schemas import RegoTradeInfoBase


class RegoTradeInfo(RegoTradeInfoBase, utils.ActiveRecord, table=True):
    __tablename__: str = "rego_trade_info"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)


class RegoTradeInfoStatistics(utils.ActiveRecord, table=True):
    """Snapshot of approved trading activity over a time window."""

    __tablename__: str = "rego_trade_info_statistics"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
    window_start: datetime.datetime
    window_end: datetime.datetime
    trade_count: int = Field(default=0)
    total_quantity: int = Field(default=0)
    average_price: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=3)

    @classmethod
    def latest(cls, session: Session) -> "RegoTradeInfoStatistics | None":
        return session.exec(
            select(cls).order_by(cls.window_end.desc(), cls.id.desc())  # type: ignore
        ).first()
