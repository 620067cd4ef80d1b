import datetime
from decimal import Decimal

from sqlmodel import Field, SQLModel

from rego_registry.core.models.base import IssuedStatus
from rego_registry.core.schemas import CamelModel

PRODUCTION_PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class PowerGenerationBase(SQLModel):
    """One metered generation total for a plant over a production month."""

    plant_id: int = Field(foreign_key="plant.id", index=True)
    electricity_production_period: str = Field(
        max_length=7,
        description="The production month in YYYY-MM format.",
    )
    power_generation_amount: Decimal = Field(
        max_digits=18,
        decimal_places=3,
        description="Metered generation for the period, up to three decimal places.",
    )
    issued_status: IssuedStatus = Field(
        default=IssuedStatus.NO,
        description="Set to 'y' exactly once, when certificates are issued against this record.",
    )
    issued_date: datetime.datetime | None = Field(default=None)


class PowerGenerationRead(CamelModel):
    id: int
    plant_id: int
    plant_name: str | None = None
    electricity_production_period: str
    power_generation_amount: Decimal
    issued_status: IssuedStatus
    issued_date: datetime.datetime | None = None
    self_rego_count: int = 0
    nation_rego_count: int = 0
    local_government_rego_count: int = 0


class PowerGenerationImportResult(CamelModel):
    created_count: int
    power_generation_ids: list[int]
