import datetime
from decimal import Decimal

from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from rego_registry.core.models.base import Region
from rego_registry.core.schemas import CamelModel


class PlantBase(SQLModel):
    """A generation facility owned by one provider.

    The three supply prices determine how the plant's generation is shared
    between its owner, the nation and the local government of its region; the
    derived percentages are stored truncated to three decimals and must add up
    to exactly 100 before any certificate can be issued.
    """

    provider_id: int = Field(
        foreign_key="provider.id",
        index=True,
        description="The power business that owns the plant.",
    )
    plant_code: str = Field(
        unique=True,
        description="Short code used as the prefix of every batch identification number.",
    )
    plant_name: str
    energy_source: str | None = Field(default=None, description="e.g. solar, wind, hydro")
    generation_purpose: str | None = Field(default=None)
    location: str | None = Field(default=None)
    region: Region = Field(
        description="Determines which local government receives its share of the plant's certificates."
    )
    inspection_date_before_usage: datetime.date | None = Field(default=None)

    ### Supply prices ###
    self_supply_price: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=3)
    nation_supply_price: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=3)
    local_government_supply_price: Decimal = Field(
        default=Decimal("0"), max_digits=18, decimal_places=3
    )

    ### Stakeholder percentages ###
    self_supply_price_percent: Decimal = Field(
        default=Decimal("100"), max_digits=6, decimal_places=3
    )
    nation_supply_price_percent: Decimal = Field(
        default=Decimal("0"), max_digits=6, decimal_places=3
    )
    local_government_supply_price_percent: Decimal = Field(
        default=Decimal("0"), max_digits=6, decimal_places=3
    )


class PlantRead(CamelModel):
    id: int
    provider_id: int
    plant_code: str
    plant_name: str
    energy_source: str | None = None
    generation_purpose: str | None = None
    location: str | None = None
    region: Region
    inspection_date_before_usage: datetime.date | None = None
    self_supply_price: Decimal
    nation_supply_price: Decimal
    local_government_supply_price: Decimal
    self_supply_price_percent: Decimal
    nation_supply_price_percent: Decimal
    local_government_supply_price_percent: Decimal


class PlantSupplyPriceUpdate(CamelModel):
    self_supply_price: Decimal = PydanticField(ge=0)
    nation_supply_price: Decimal = PydanticField(ge=0)
    local_government_supply_price: Decimal = PydanticField(ge=0)
