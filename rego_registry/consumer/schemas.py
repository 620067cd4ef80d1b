from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from rego_registry.core.schemas import CamelModel


class ConsumerBase(SQLModel):
    """A corporate electricity user that buys certificates and redeems them
    against its consumption."""

    login_id: str = Field(
        unique=True,
        index=True,
        description="The identifier the consumer signs in with.",
    )
    account_name: str = Field(description="Name of the person managing the account.")
    corporation_name: str | None = Field(default=None)
    address: str | None = Field(default=None)
    workplace_name: str | None = Field(default=None)
    workplace_address: str | None = Field(default=None)
    representative_name: str | None = Field(default=None)
    representative_phone: str | None = Field(default=None)


class ConsumerRead(CamelModel):
    id: int
    login_id: str
    account_name: str
    corporation_name: str | None = None
    address: str | None = None
    workplace_name: str | None = None
    workplace_address: str | None = None
    representative_name: str | None = None
    representative_phone: str | None = None


class ConsumerSignUp(CamelModel):
    login_id: str = PydanticField(min_length=4, max_length=50)
    password: str = PydanticField(min_length=8)
    account_name: str
    corporation_name: str | None = None
    address: str | None = None
    workplace_name: str | None = None
    workplace_address: str | None = None
    representative_name: str | None = None
    representative_phone: str | None = None
