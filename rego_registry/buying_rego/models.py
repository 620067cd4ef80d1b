from sqlmodel import Field

from rego_registry import utils
from rego_registry.buying_rego.schemas import BuyingRegoBase


class BuyingRego(BuyingRegoBase, utils.ActiveRecord, table=True):
    __tablename__: str = "buying_rego"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
