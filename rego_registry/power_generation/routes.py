from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import get_current_provider
from rego_registry.core.database import db
from rego_registry.core.exceptions import ValidationError
from rego_registry.core.models.base import IssuedStatus
from rego_registry.core.schemas import ApiResponse
from rego_registry.power_generation import services
from rego_registry.power_generation.schemas import (
    PowerGenerationImportResult,
    PowerGenerationRead,
)
from rego_registry.utils import parse_import_file

# Router initialisation
router = APIRouter(tags=["Power Generation"])


@router.get("", response_model=ApiResponse[list[PowerGenerationRead]])
def read_power_generations(
    issued_status: IssuedStatus | None = Query(default=None, alias="issuedStatus"),
    plant_id: int | None = Query(default=None, alias="plantId"),
    current_provider: Principal = Depends(get_current_provider),
    read_session: Session = Depends(db.get_read_session),
):
    power_generations = services.get_power_generations(
        current_provider.id, read_session, issued_status=issued_status, plant_id=plant_id
    )
    return ApiResponse(data=power_generations)


@router.post(
    "/import",
    status_code=201,
    response_model=ApiResponse[PowerGenerationImportResult],
)
async def import_power_generations(
    file: UploadFile = File(...),
    current_provider: Principal = Depends(get_current_provider),
    write_session: Session = Depends(db.get_write_session),
):
    """Import metered generation from a CSV or JSON file.

    Expected columns: plant_id, electricity_production_period (YYYY-MM),
    power_generation_amount.
    """
    raw = await file.read()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationError("The import file must be UTF-8 encoded.")

    power_generation_df = parse_import_file(file.filename, content)
    result = services.import_power_generations(
        current_provider.id, power_generation_df, write_session
    )
    return ApiResponse(message="Generation records imported.", data=result)
