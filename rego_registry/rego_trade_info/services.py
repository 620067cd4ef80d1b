import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlmodel import Session, func, select

from rego_registry.buying_rego.models import BuyingRego
from rego_registry.consumer.models import Consumer
from rego_registry.core.database import db
from rego_registry.core.models.base import (
    RegoStatus,
    RegoTradingStatus,
    TradingApplicationStatus,
)
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.rego.models import Rego, RegoGroup
from rego_registry.rego.splitter import truncate_to_three_decimals
from rego_registry.rego.validation import (
    transition_rego_group,
    validate_rego_group_buyable,
)
from rego_registry.rego_trade_info.models import RegoTradeInfo, RegoTradeInfoStatistics
from rego_registry.rego_trade_info.schemas import (
    RegoBuyingRequest,
    RegoTradeAcceptResult,
    RegoTradeInfoListRead,
    RegoTradeInfoQuery,
    RegoTradeInfoRead,
    RegoTradeInfoStatisticsRead,
)
from rego_registry.rego_trade_info.validation import (
    transition_trade,
    validate_trade_buyer,
    validate_trade_seller,
)
from rego_registry.utils import utc_datetime_now


def request_buying(
    consumer_id: int,
    buying_request: RegoBuyingRequest,
    write_session: Session,
) -> RegoTradeInfoRead:
    """Record a consumer's request to buy units from a listed REGO group.

    The group is only checked here; its remaining amount is not reserved and is
    re-validated when the seller accepts.

    Raises:
        NotFoundError: If the group does not exist.
        ConflictError: If the group is not active and trading.
        InsufficientQuantityError: If the group has fewer units left than requested.
    """
    with db.transaction(write_session):
        rego_group = RegoGroup.by_id(buying_request.rego_group_id, write_session)
        validate_rego_group_buyable(rego_group, buying_request.buying_amount)

        trade = RegoTradeInfo(
            provider_id=rego_group.provider_id,
            consumer_id=consumer_id,
            plant_id=rego_group.plant_id,
            rego_group_id=rego_group.id,  # type: ignore
            identification_number=rego_group.identification_number,
            trading_application_status=TradingApplicationStatus.PENDING,
            buying_amount=buying_request.buying_amount,
            buying_price=buying_request.buying_price,
            buying_application_date=utc_datetime_now(),
        )
        write_session.add(trade)
        write_session.flush()
        result = RegoTradeInfoRead.model_validate(trade)

    logger.info(
        f"Consumer {consumer_id} requested {result.buying_amount} REGOs "
        f"from group {result.identification_number} (trade {result.id})"
    )
    return result


def accept_trade(
    provider_id: int,
    rego_trade_info_id: int,
    write_session: Session,
) -> RegoTradeAcceptResult:
    """Approve a pending trade and transfer the units to the buyer.

    The process consists of the following steps, all in one transaction:
    1. Lock the trade and check that the caller is its seller and it is still pending.
    2. Lock the REGO group and re-validate that it is active/trading with enough
       remaining units, since other trades may have been approved since the request.
    3. Allocate the next contiguous unit range: units are sold in sequence order,
       so the range starts right after the units sold so far.
    4. Decrement the remaining amount; a group with nothing left becomes used/end.
    5. Create the buyer's holding and assign the units in the range to the buyer.

    Args:
        provider_id (int): The provider approving the trade.
        rego_trade_info_id (int): The trade to approve.
        write_session (Session): The database session to write to.

    Returns:
        RegoTradeAcceptResult: The approved trade and the resulting holding.

    Raises:
        NotFoundError: If the trade or its group does not exist.
        AuthorizationError: If the caller is not the seller.
        ConflictError: If the trade is no longer pending or the group is no longer on sale.
        InsufficientQuantityError: If the group can no longer cover the trade.
    """
    with db.transaction(write_session):
        trade = RegoTradeInfo.by_id(rego_trade_info_id, write_session, for_update=True)
        validate_trade_seller(trade, provider_id)
        transition_trade(trade, TradingApplicationStatus.APPROVE)

        rego_group = RegoGroup.by_id(trade.rego_group_id, write_session, for_update=True)
        validate_rego_group_buyable(rego_group, trade.buying_amount)

        sold_so_far = (
            rego_group.issued_generation_amount - rego_group.remaining_generation_amount
        )
        start_number = sold_so_far + 1
        end_number = sold_so_far + trade.buying_amount

        rego_group.remaining_generation_amount -= trade.buying_amount
        if rego_group.remaining_generation_amount == 0:
            transition_rego_group(rego_group, RegoStatus.USED, RegoTradingStatus.END)
        write_session.add(rego_group)

        completed_date = utc_datetime_now()
        trade.trade_completed_date = completed_date
        trade.identification_start_number = start_number
        trade.identification_end_number = end_number
        write_session.add(trade)

        buying_rego = BuyingRego(
            consumer_id=trade.consumer_id,
            rego_group_id=rego_group.id,  # type: ignore
            rego_trade_info_id=trade.id,
            identification_number=rego_group.identification_number,
            identification_start_number=start_number,
            identification_end_number=end_number,
            buying_amount=trade.buying_amount,
            rego_status=RegoStatus.ACTIVE,
        )
        write_session.add(buying_rego)

        write_session.exec(
            update(Rego)  # type: ignore
            .where(
                Rego.rego_group_id == rego_group.id,
                Rego.sequence_number >= start_number,  # type: ignore
                Rego.sequence_number <= end_number,  # type: ignore
            )
            .values(consumer_id=trade.consumer_id)
        )
        write_session.flush()

        result = RegoTradeAcceptResult(
            rego_trade_info=RegoTradeInfoRead.model_validate(trade),
            rego_group_id=rego_group.id,  # type: ignore
            remaining_generation_amount=rego_group.remaining_generation_amount,
            buying_rego_id=buying_rego.id,  # type: ignore
            identification_start_number=start_number,
            identification_end_number=end_number,
        )

    logger.info(
        f"Provider {provider_id} approved trade {rego_trade_info_id}: units "
        f"{start_number}-{end_number} of {result.rego_trade_info.identification_number}"
    )
    return result


def refuse_trade(
    provider_id: int,
    rego_trade_info_id: int,
    rejected_reason: str,
    write_session: Session,
) -> RegoTradeInfoRead:
    """Reject a pending trade with a reason. The REGO group is not touched."""
    with db.transaction(write_session):
        trade = RegoTradeInfo.by_id(rego_trade_info_id, write_session, for_update=True)
        validate_trade_seller(trade, provider_id)
        transition_trade(trade, TradingApplicationStatus.REJECTED)

        trade.rejected_reason = rejected_reason
        trade.trade_completed_date = utc_datetime_now()
        write_session.add(trade)
        write_session.flush()
        result = RegoTradeInfoRead.model_validate(trade)

    logger.info(f"Provider {provider_id} rejected trade {rego_trade_info_id}")
    return result


def cancel_trade(
    consumer_id: int,
    rego_trade_info_id: int,
    write_session: Session,
) -> RegoTradeInfoRead:
    """Withdraw a consumer's own pending buy request."""
    with db.transaction(write_session):
        trade = RegoTradeInfo.by_id(rego_trade_info_id, write_session, for_update=True)
        validate_trade_buyer(trade, consumer_id)
        transition_trade(trade, TradingApplicationStatus.CANCELED)

        write_session.add(trade)
        write_session.flush()
        result = RegoTradeInfoRead.model_validate(trade)

    logger.info(f"Consumer {consumer_id} cancelled trade {rego_trade_info_id}")
    return result


def query_trades(
    query: RegoTradeInfoQuery,
    read_session: Session,
    provider_id: int | None = None,
    consumer_id: int | None = None,
) -> list[RegoTradeInfoListRead]:
    stmt = (
        select(
            RegoTradeInfo,
            Consumer.account_name,
            Consumer.corporation_name,
            Plant.plant_name,
            RegoGroup.electricity_production_period,
        )
        .join(Consumer, Consumer.id == RegoTradeInfo.consumer_id)  # type: ignore
        .join(Plant, Plant.id == RegoTradeInfo.plant_id)  # type: ignore
        .join(RegoGroup, RegoGroup.id == RegoTradeInfo.rego_group_id)  # type: ignore
    )

    if provider_id is not None:
        stmt = stmt.where(RegoTradeInfo.provider_id == provider_id)
    if consumer_id is not None:
        stmt = stmt.where(RegoTradeInfo.consumer_id == consumer_id)
    if query.trading_application_status is not None:
        stmt = stmt.where(
            RegoTradeInfo.trading_application_status == query.trading_application_status
        )
    if query.identification_number:
        stmt = stmt.where(
            RegoTradeInfo.identification_number.contains(query.identification_number)  # type: ignore
        )
    if query.electricity_production_period:
        stmt = stmt.where(
            RegoGroup.electricity_production_period == query.electricity_production_period
        )
    if query.buyer_name:
        stmt = stmt.where(Consumer.account_name.contains(query.buyer_name))  # type: ignore

    # Completed trades are listed by completion, open requests by application
    if query.trading_application_status == TradingApplicationStatus.APPROVE:
        stmt = stmt.order_by(RegoTradeInfo.trade_completed_date.desc())  # type: ignore
    else:
        stmt = stmt.order_by(RegoTradeInfo.buying_application_date.desc())  # type: ignore
    stmt = stmt.order_by(RegoTradeInfo.id.desc())  # type: ignore

    return [
        RegoTradeInfoListRead.model_validate(
            {
                **RegoTradeInfoRead.model_validate(trade).model_dump(),
                "consumer_account_name": account_name,
                "corporation_name": corporation_name,
                "plant_name": plant_name,
                "electricity_production_period": period,
            }
        )
        for trade, account_name, corporation_name, plant_name, period in read_session.exec(
            stmt
        )
    ]


def record_trade_statistics(
    write_session: Session,
    window_end: datetime.datetime | None = None,
    window: datetime.timedelta = datetime.timedelta(days=1),
) -> RegoTradeInfoStatisticsRead:
    """Aggregate trades approved in ``[window_end - window, window_end)`` into a snapshot."""
    window_end = window_end or utc_datetime_now()
    window_start = window_end - window

    with db.transaction(write_session):
        trade_count, total_quantity, average_price = write_session.exec(
            select(
                func.count(RegoTradeInfo.id),  # type: ignore
                func.sum(RegoTradeInfo.buying_amount),
                func.avg(RegoTradeInfo.buying_price),
            ).where(
                RegoTradeInfo.trading_application_status
                == TradingApplicationStatus.APPROVE,
                RegoTradeInfo.trade_completed_date >= window_start,  # type: ignore
                RegoTradeInfo.trade_completed_date < window_end,  # type: ignore
            )
        ).one()

        statistics = RegoTradeInfoStatistics(
            window_start=window_start,
            window_end=window_end,
            trade_count=trade_count or 0,
            total_quantity=total_quantity or 0,
            average_price=truncate_to_three_decimals(Decimal(str(average_price or 0))),
        )
        write_session.add(statistics)
        write_session.flush()
        write_session.refresh(statistics)
        result = RegoTradeInfoStatisticsRead.model_validate(statistics)

    logger.info(
        f"Recorded trade statistics for {window_start.isoformat()} - {window_end.isoformat()}: "
        f"{result.trade_count} trades, {result.total_quantity} REGOs"
    )
    return result
