from fastapi import APIRouter, Depends
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import get_current_consumer
from rego_registry.core.database import db
from rego_registry.core.schemas import ApiResponse
from rego_registry.rego_confirmation import services
from rego_registry.rego_confirmation.schemas import (
    RegoConfirmationDetailRead,
    RegoConfirmationIssueRequest,
    RegoConfirmationRead,
)

# Router initialisation
router = APIRouter(tags=["REGO Confirmation"])


@router.get("", response_model=ApiResponse[list[RegoConfirmationRead]])
def read_confirmations(
    current_consumer: Principal = Depends(get_current_consumer),
    read_session: Session = Depends(db.get_read_session),
):
    confirmations = services.get_confirmations_by_consumer_id(
        current_consumer.id, read_session
    )
    return ApiResponse(data=confirmations)


@router.get("/{rego_confirmation_id}", response_model=ApiResponse[RegoConfirmationDetailRead])
def read_confirmation(
    rego_confirmation_id: int,
    current_consumer: Principal = Depends(get_current_consumer),
    read_session: Session = Depends(db.get_read_session),
):
    confirmation = services.get_confirmation_detail(
        rego_confirmation_id, current_consumer.id, read_session
    )
    return ApiResponse(data=confirmation)


@router.post("/issue", status_code=201, response_model=ApiResponse[RegoConfirmationDetailRead])
def issue_confirmation(
    issue_request: RegoConfirmationIssueRequest,
    current_consumer: Principal = Depends(get_current_consumer),
    write_session: Session = Depends(db.get_write_session),
):
    """Issue a usage confirmation by redeeming owned REGOs.

    A holding redeemed in part keeps its remaining units, and the redeemed units
    are recorded as a separate used holding. Either every selection is redeemed or
    none is.
    """
    confirmation = services.issue_confirmation(
        current_consumer.id, issue_request, write_session
    )
    return ApiResponse(message="Usage confirmation issued.", data=confirmation)
