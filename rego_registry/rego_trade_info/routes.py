from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import (
    get_current_consumer,
    get_current_principal,
    get_current_provider,
)
from rego_registry.core.database import db
from rego_registry.core.models.base import PrincipalRole, TradingApplicationStatus
from rego_registry.core.schemas import ApiResponse
from rego_registry.rego_trade_info import services
from rego_registry.rego_trade_info.models import RegoTradeInfoStatistics
from rego_registry.rego_trade_info.schemas import (
    RegoBuyingRequest,
    RegoTradeAcceptRequest,
    RegoTradeAcceptResult,
    RegoTradeCancelRequest,
    RegoTradeInfoListRead,
    RegoTradeInfoQuery,
    RegoTradeInfoRead,
    RegoTradeInfoStatisticsRead,
    RegoTradeRefuseRequest,
)

# Router initialisation
router = APIRouter(tags=["REGO Trade Info"])


@router.get("", response_model=ApiResponse[list[RegoTradeInfoListRead]])
def read_trades(
    trading_application_status: TradingApplicationStatus | None = Query(
        default=None, alias="tradingApplicationStatus"
    ),
    identification_number: str | None = Query(default=None, alias="identificationNumber"),
    electricity_production_period: str | None = Query(
        default=None, alias="electricityProductionPeriod"
    ),
    buyer_name: str | None = Query(default=None, alias="buyerName"),
    principal: Principal = Depends(get_current_principal),
    read_session: Session = Depends(db.get_read_session),
):
    """List trades: sales of the calling provider, or requests of the calling consumer."""
    query = RegoTradeInfoQuery(
        trading_application_status=trading_application_status,
        identification_number=identification_number,
        electricity_production_period=electricity_production_period,
        buyer_name=buyer_name,
    )
    if principal.role == PrincipalRole.PROVIDER:
        trades = services.query_trades(query, read_session, provider_id=principal.id)
    else:
        trades = services.query_trades(query, read_session, consumer_id=principal.id)
    return ApiResponse(data=trades)


@router.get(
    "/statistics", response_model=ApiResponse[RegoTradeInfoStatisticsRead | None]
)
def read_trade_statistics(
    principal: Principal = Depends(get_current_principal),
    read_session: Session = Depends(db.get_read_session),
):
    statistics = RegoTradeInfoStatistics.latest(read_session)
    if statistics is None:
        return ApiResponse(message="No trade statistics have been recorded yet.")
    return ApiResponse(data=RegoTradeInfoStatisticsRead.model_validate(statistics))


@router.post("/buying", status_code=201, response_model=ApiResponse[RegoTradeInfoRead])
def request_buying(
    buying_request: RegoBuyingRequest,
    current_consumer: Principal = Depends(get_current_consumer),
    write_session: Session = Depends(db.get_write_session),
):
    """Request to buy REGOs from a group that is on the market."""
    trade = services.request_buying(current_consumer.id, buying_request, write_session)
    return ApiResponse(message="Buy request submitted.", data=trade)


@router.post("/accept", response_model=ApiResponse[RegoTradeAcceptResult])
def accept_trade(
    accept_request: RegoTradeAcceptRequest,
    current_provider: Principal = Depends(get_current_provider),
    write_session: Session = Depends(db.get_write_session),
):
    """Approve a pending buy request and transfer the units to the buyer."""
    result = services.accept_trade(
        current_provider.id, accept_request.rego_trade_info_id, write_session
    )
    return ApiResponse(message="Trade approved.", data=result)


@router.post("/refuse", response_model=ApiResponse[RegoTradeInfoRead])
def refuse_trade(
    refuse_request: RegoTradeRefuseRequest,
    current_provider: Principal = Depends(get_current_provider),
    write_session: Session = Depends(db.get_write_session),
):
    trade = services.refuse_trade(
        current_provider.id,
        refuse_request.rego_trade_info_id,
        refuse_request.rejected_reason,
        write_session,
    )
    return ApiResponse(message="Trade rejected.", data=trade)


@router.put("/cancel", response_model=ApiResponse[RegoTradeInfoRead])
def cancel_trade(
    cancel_request: RegoTradeCancelRequest,
    current_consumer: Principal = Depends(get_current_consumer),
    write_session: Session = Depends(db.get_write_session),
):
    trade = services.cancel_trade(
        current_consumer.id, cancel_request.rego_trade_info_id, write_session
    )
    return ApiResponse(message="Buy request cancelled.", data=trade)
