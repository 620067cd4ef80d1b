import datetime

from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from rego_registry.core.schemas import CamelModel
from rego_registry.power_generation.schemas import PRODUCTION_PERIOD_PATTERN


class RegoConfirmationBase(SQLModel):
    """A usage confirmation: a document stating that a number of owned
    certificates were applied against a consumer's usage for a period.
    Immutable once issued."""

    consumer_id: int = Field(foreign_key="consumer.id", index=True)
    rego_usage_amount: int = Field(gt=0)
    power_usage_amount: int = Field(gt=0)
    usage_recognition_period: str = Field(max_length=7)
    confirmation_number: str | None = Field(
        default=None,
        unique=True,
        description="'P-<yyyy-mm-dd>-<id padded to 4 digits>', assigned once the id is known.",
    )


class UsageSelection(CamelModel):
    buying_rego_id: int
    usage_amount: int = PydanticField(gt=0)


class RegoConfirmationIssueRequest(CamelModel):
    selections: list[UsageSelection]
    usage_recognition_period: str = PydanticField(pattern=PRODUCTION_PERIOD_PATTERN)


class CertificationIssueRegoRead(CamelModel):
    id: int
    buying_rego_id: int
    rego_confirmation_id: int
    usage_application_amount: int


class RegoConfirmationRead(CamelModel):
    id: int
    consumer_id: int
    rego_usage_amount: int
    power_usage_amount: int
    usage_recognition_period: str
    confirmation_number: str | None = None
    created_at: datetime.datetime


class RegoConfirmationDetailRead(RegoConfirmationRead):
    line_items: list[CertificationIssueRegoRead] = []
