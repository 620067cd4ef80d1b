from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import get_current_provider
from rego_registry.core.database import db
from rego_registry.core.schemas import ApiResponse
from rego_registry.provider import services
from rego_registry.provider.models import Provider
from rego_registry.provider.schemas import CarriedOverAmountRead, ProviderRead

# Router initialisation
router = APIRouter(tags=["Providers"])


@router.get("", response_model=ApiResponse[ProviderRead])
def read_provider(
    current_provider: Principal = Depends(get_current_provider),
    read_session: Session = Depends(db.get_read_session),
):
    provider = Provider.by_id(current_provider.id, read_session)
    return ApiResponse(data=ProviderRead.model_validate(provider))


@router.get(
    "/carried-over-power-gen-amount",
    response_model=ApiResponse[CarriedOverAmountRead],
)
def read_carried_over_power_gen_amount(
    plant_id: int = Query(alias="plantId"),
    current_provider: Principal = Depends(get_current_provider),
    read_session: Session = Depends(db.get_read_session),
):
    carried_over = services.get_carried_over_amounts(
        current_provider.id, plant_id, read_session
    )
    return ApiResponse(data=carried_over)
