from pydantic import BaseModel

from rego_registry.core.models.base import PrincipalRole
from rego_registry.core.schemas import CamelModel


class LoginRequest(CamelModel):
    login_id: str
    password: str


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    role: PrincipalRole
    account_id: int
    is_first_login: bool = False


class Principal(BaseModel):
    """The authenticated caller of a request."""

    role: PrincipalRole
    id: int
    login_id: str
