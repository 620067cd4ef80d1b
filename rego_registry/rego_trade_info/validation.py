from rego_registry.core.exceptions import AuthorizationError, ConflictError
from rego_registry.core.models.base import TradingApplicationStatus
from rego_registry.logging_config import logger
from rego_registry.rego_trade_info.models import RegoTradeInfo

# A trade leaves pending exactly once and every other state is terminal
TRADE_TRANSITIONS: dict[TradingApplicationStatus, set[TradingApplicationStatus]] = {
    TradingApplicationStatus.PENDING: {
        TradingApplicationStatus.APPROVE,
        TradingApplicationStatus.REJECTED,
        TradingApplicationStatus.CANCELED,
    },
    TradingApplicationStatus.APPROVE: set(),
    TradingApplicationStatus.REJECTED: set(),
    TradingApplicationStatus.CANCELED: set(),
}

TERMINAL_STATE_DESCRIPTIONS = {
    TradingApplicationStatus.APPROVE: "has already been approved",
    TradingApplicationStatus.REJECTED: "has already been rejected",
    TradingApplicationStatus.CANCELED: "has already been cancelled by the buyer",
}


def transition_trade(
    trade: RegoTradeInfo, target_status: TradingApplicationStatus
) -> None:
    """Move a trade to ``target_status`` or raise a ConflictError naming the state it is already in."""
    current = trade.trading_application_status
    if target_status not in TRADE_TRANSITIONS[current]:
        description = TERMINAL_STATE_DESCRIPTIONS.get(
            current, f"is {current.value}"
        )
        err_msg = f"Trade {trade.id} {description} and can no longer be changed."
        logger.error(err_msg)
        raise ConflictError(
            err_msg,
            details={
                "rego_trade_info_id": trade.id,
                "trading_application_status": current.value,
            },
        )

    trade.trading_application_status = target_status


def validate_trade_seller(trade: RegoTradeInfo, provider_id: int) -> None:
    if trade.provider_id != provider_id:
        err_msg = f"Trade {trade.id} is not a sale by the requesting provider."
        logger.error(err_msg)
        raise AuthorizationError(err_msg)


def validate_trade_buyer(trade: RegoTradeInfo, consumer_id: int) -> None:
    if trade.consumer_id != consumer_id:
        err_msg = f"Trade {trade.id} was not requested by the current consumer."
        logger.error(err_msg)
        raise AuthorizationError(err_msg)
