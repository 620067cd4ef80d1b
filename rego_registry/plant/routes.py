from fastapi import APIRouter, Depends
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import get_current_provider
from rego_registry.core.database import db
from rego_registry.core.exceptions import AuthorizationError
from rego_registry.core.schemas import ApiResponse
from rego_registry.plant import services
from rego_registry.plant.models import Plant
from rego_registry.plant.schemas import PlantRead, PlantSupplyPriceUpdate

# Router initialisation
router = APIRouter(tags=["Plants"])


@router.get("", response_model=ApiResponse[list[PlantRead]])
def read_plants(
    current_provider: Principal = Depends(get_current_provider),
    read_session: Session = Depends(db.get_read_session),
):
    plants = Plant.by_provider_id(current_provider.id, read_session)
    return ApiResponse(data=[PlantRead.model_validate(plant) for plant in plants])


@router.get("/{plant_id}", response_model=ApiResponse[PlantRead])
def read_plant(
    plant_id: int,
    current_provider: Principal = Depends(get_current_provider),
    read_session: Session = Depends(db.get_read_session),
):
    plant = Plant.by_id(plant_id, read_session)
    if plant.provider_id != current_provider.id:
        raise AuthorizationError(f"Plant {plant_id} is not owned by the requesting provider.")
    return ApiResponse(data=PlantRead.model_validate(plant))


@router.put("/{plant_id}", response_model=ApiResponse[PlantRead])
def update_plant_supply_prices(
    plant_id: int,
    price_update: PlantSupplyPriceUpdate,
    current_provider: Principal = Depends(get_current_provider),
    write_session: Session = Depends(db.get_write_session),
):
    """Update the supply prices of a plant and recompute its stakeholder percentages."""
    plant = services.update_supply_prices(
        plant_id, current_provider.id, price_update, write_session
    )
    return ApiResponse(message="Supply prices updated.", data=plant)
