from decimal import Decimal

from pydantic import Field as PydanticField
from pydantic import model_validator
from sqlmodel import Field, SQLModel

from rego_registry.core.models.base import AccountType, Region
from rego_registry.core.schemas import CamelModel


class ProviderBase(SQLModel):
    """A power business that owns plants, or one of the public stakeholders
    (the nation, or a regional local government) that receive a share of every
    plant's certificates."""

    login_id: str = Field(
        unique=True,
        index=True,
        description="The identifier the provider signs in with.",
    )
    account_name: str = Field(description="The business or institution name.")
    account_type: AccountType = Field(
        default=AccountType.POWER_BUSINESS,
        description="""One of: powerBusiness, nation, localGovernment. Exactly one nation account
        and at most one local government account per region may exist.""",
    )
    region: Region | None = Field(
        default=None,
        description="The province a local government account represents.",
    )
    representative_name: str | None = Field(default=None)
    representative_phone: str | None = Field(default=None)
    address: str | None = Field(default=None)


class ProviderRead(CamelModel):
    id: int
    login_id: str
    account_name: str
    account_type: AccountType
    region: Region | None = None
    representative_name: str | None = None
    representative_phone: str | None = None
    address: str | None = None
    is_first_login: bool


class ProviderSignUp(CamelModel):
    login_id: str = PydanticField(min_length=4, max_length=50)
    password: str = PydanticField(min_length=8)
    account_name: str
    account_type: AccountType = AccountType.POWER_BUSINESS
    region: Region | None = None
    representative_name: str | None = None
    representative_phone: str | None = None
    address: str | None = None

    @model_validator(mode="after")
    def check_region(self) -> "ProviderSignUp":
        if self.account_type == AccountType.LOCAL_GOVERNMENT and self.region is None:
            raise ValueError("A local government account must declare its region.")
        return self


class CarriedOverAmountRead(CamelModel):
    plant_id: int
    self_carried_over_amount: Decimal
    nation_carried_over_amount: Decimal
    local_government_carried_over_amount: Decimal
