from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import (
    get_current_principal,
    get_current_provider,
)
from rego_registry.core.database import db
from rego_registry.core.models.base import PrincipalRole, RegoStatus, RegoTradingStatus
from rego_registry.core.schemas import ApiResponse
from rego_registry.rego import services
from rego_registry.rego.schemas import (
    RegoGroupMarketRead,
    RegoGroupQuery,
    RegoGroupRead,
    RegoIssueRequest,
    RegoIssueResult,
    RegoRead,
    RegoSellRequest,
)

# Router initialisation
router = APIRouter(tags=["REGO"])


@router.get("", response_model=ApiResponse[list[RegoGroupMarketRead]])
def read_rego_groups(
    status: RegoStatus | None = Query(default=None),
    trading_status: RegoTradingStatus | None = Query(default=None, alias="tradingStatus"),
    plant_name: str | None = Query(default=None, alias="plantName"),
    electricity_production_period: str | None = Query(
        default=None, alias="electricityProductionPeriod"
    ),
    mine: bool = Query(default=False, description="Only the calling provider's groups."),
    principal: Principal = Depends(get_current_principal),
    read_session: Session = Depends(db.get_read_session),
):
    """List REGO groups, e.g. the market (tradingStatus=trading) or a provider's own batches."""
    query = RegoGroupQuery(
        status=status,
        trading_status=trading_status,
        plant_name=plant_name,
        electricity_production_period=electricity_production_period,
        provider_id=principal.id
        if mine and principal.role == PrincipalRole.PROVIDER
        else None,
    )
    return ApiResponse(data=services.query_rego_groups(query, read_session))


@router.post("/issue", status_code=201, response_model=ApiResponse[RegoIssueResult])
def issue_regos(
    issue_request: RegoIssueRequest,
    current_provider: Principal = Depends(get_current_provider),
    write_session: Session = Depends(db.get_write_session),
):
    """Issue REGOs for generation records of the provider's plants.

    Each record is split between the plant owner, the nation and the local
    government of the plant's region according to the plant's supply percentages.
    Whole certificates are issued per stakeholder and fractions are carried over to
    the next issuance for the same plant. If any record cannot be issued, nothing is.

    Args:
        issue_request (RegoIssueRequest): The generation records to issue for.
        current_provider (Principal): The authenticated provider.
        write_session (Session): The database session to write to.

    Returns:
        ApiResponse[RegoIssueResult]: The created REGO groups.
    """
    result = services.issue_regos(
        current_provider.id, issue_request.power_generation_ids, write_session
    )
    return ApiResponse(message="REGOs issued.", data=result)


@router.post("/sell", response_model=ApiResponse[list[RegoGroupRead]])
def sell_regos(
    sell_request: RegoSellRequest,
    current_provider: Principal = Depends(get_current_provider),
    write_session: Session = Depends(db.get_write_session),
):
    """List REGO groups for sale. Only groups that have never been listed can be."""
    listed = services.list_rego_groups_for_sale(
        current_provider.id, sell_request.rego_group_ids, write_session
    )
    return ApiResponse(message="REGOs listed for sale.", data=listed)


@router.get("/{rego_group_id}/units", response_model=ApiResponse[list[RegoRead]])
def read_rego_group_units(
    rego_group_id: int,
    current_provider: Principal = Depends(get_current_provider),
    read_session: Session = Depends(db.get_read_session),
):
    """List the units of one of the provider's REGO groups with their current owner."""
    return ApiResponse(
        data=services.get_rego_group_units(current_provider.id, rego_group_id, read_session)
    )
