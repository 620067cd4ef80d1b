from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlmodel import Session

from rego_registry.authentication import services
from rego_registry.authentication.schemas import LoginRequest, Token
from rego_registry.consumer.models import Consumer
from rego_registry.consumer.schemas import ConsumerRead, ConsumerSignUp
from rego_registry.core.database import db
from rego_registry.core.models.base import PrincipalRole
from rego_registry.core.schemas import ApiResponse
from rego_registry.provider.models import Provider
from rego_registry.provider.schemas import ProviderRead, ProviderSignUp
from rego_registry.settings import settings as st

router = APIRouter(tags=["Authentication"])


def _issue_token(account: Provider | Consumer, role: PrincipalRole) -> Token:
    access_token = services.create_access_token(
        data={"sub": account.login_id, "role": role.value},
        expires_delta=timedelta(minutes=st.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return Token(
        access_token=access_token,
        role=role,
        account_id=account.id,  # type: ignore
        is_first_login=getattr(account, "is_first_login", False),
    )


@router.post("/provider/login", response_model=ApiResponse[Token])
def provider_login(
    login_request: LoginRequest,
    write_session: Session = Depends(db.get_write_session),
):
    """Login for a provider access token.

    Five consecutive failed attempts lock the account.

    Args:
        login_request (LoginRequest): The login id and password.
        write_session (Session): The database session to write to.

    Returns:
        ApiResponse[Token]: The access token.
    """
    provider = services.authenticate(
        Provider, login_request.login_id, login_request.password, write_session
    )
    return ApiResponse(
        message="Logged in.", data=_issue_token(provider, PrincipalRole.PROVIDER)
    )


@router.post("/consumer/login", response_model=ApiResponse[Token])
def consumer_login(
    login_request: LoginRequest,
    write_session: Session = Depends(db.get_write_session),
):
    """Login for a consumer access token."""
    consumer = services.authenticate(
        Consumer, login_request.login_id, login_request.password, write_session
    )
    return ApiResponse(
        message="Logged in.", data=_issue_token(consumer, PrincipalRole.CONSUMER)
    )


@router.post("/provider/sign-up", status_code=201, response_model=ApiResponse[ProviderRead])
def provider_sign_up(
    sign_up: ProviderSignUp,
    write_session: Session = Depends(db.get_write_session),
):
    provider = services.sign_up_provider(sign_up, write_session)
    return ApiResponse(message="Provider registered.", data=provider)


@router.post("/consumer/sign-up", status_code=201, response_model=ApiResponse[ConsumerRead])
def consumer_sign_up(
    sign_up: ConsumerSignUp,
    write_session: Session = Depends(db.get_write_session),
):
    consumer = services.sign_up_consumer(sign_up, write_session)
    return ApiResponse(message="Consumer registered.", data=consumer)
