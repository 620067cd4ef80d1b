from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import get_current_consumer
from rego_registry.buying_rego import services
from rego_registry.buying_rego.schemas import BuyingRegoListRead
from rego_registry.core.database import db
from rego_registry.core.models.base import RegoStatus
from rego_registry.core.schemas import ApiResponse

# Router initialisation
router = APIRouter(tags=["Buying REGO"])


@router.get("", response_model=ApiResponse[list[BuyingRegoListRead]])
def read_buying_regos(
    rego_status: RegoStatus | None = Query(default=None, alias="regoStatus"),
    current_consumer: Principal = Depends(get_current_consumer),
    read_session: Session = Depends(db.get_read_session),
):
    """List the consumer's REGO holdings."""
    buying_regos = services.get_buying_regos_by_consumer_id(
        current_consumer.id, read_session, rego_status=rego_status
    )
    return ApiResponse(data=buying_regos)
