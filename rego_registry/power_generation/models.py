from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from rego_registry import utils
from rego_registry.power_generation.schemas import PowerGenerationBase


class PowerGeneration(PowerGenerationBase, utils.ActiveRecord, table=True):
    __tablename__: str = "power_generation"  # type: ignore
    __table_args__ = (
        UniqueConstraint("plant_id", "electricity_production_period"),
    )

    id: int | None = Field(default=None, primary_key=True)
