import datetime
from typing import Type

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.consumer.models import Consumer
from rego_registry.consumer.schemas import ConsumerRead, ConsumerSignUp
from rego_registry.core.database import db
from rego_registry.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
)
from rego_registry.core.models.base import AccountType, PrincipalRole
from rego_registry.logging_config import logger
from rego_registry.provider.models import Provider
from rego_registry.provider.schemas import ProviderRead, ProviderSignUp
from rego_registry.settings import settings as st

pwd_context = CryptContext(schemes=["pbkdf2_sha512"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/provider/login",
    auto_error=False,
)


JWT_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired JWT access-token",
    headers={"WWW-Authenticate": "Bearer"},
)


MISSING_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Missing authentication credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify that the provided password matches the hashed password."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash the provided password."""
    return pwd_context.hash(password)


def authenticate(
    account_model: Type[Provider] | Type[Consumer],
    login_id: str,
    password: str,
    write_session: Session,
) -> Provider | Consumer:
    """Verify a provider's or consumer's credentials.

    Each failed attempt is counted and stored even though the login fails; once
    the count reaches the configured limit the account is locked. A successful
    login resets the count.

    Args:
        account_model: Provider or Consumer.
        login_id (str): The login id to authenticate.
        password (str): The password to verify.
        write_session (Session): The database session to write to.

    Returns:
        The authenticated account.

    Raises:
        AuthenticationError: If the login id is unknown or the password is wrong.
        AccountLockedError: If the account has reached the failed login limit.
    """
    limit = st.LOGIN_FAIL_COUNT_LIMIT

    with db.transaction(write_session):
        account = account_model.by_login_id(login_id, write_session)
        if account is None:
            raise AuthenticationError("Incorrect login id or password.")

        if account.login_fail_count >= limit:
            raise AccountLockedError(
                f"The account is locked after {limit} failed login attempts. "
                "Please contact the administrator."
            )

        verified = verify_password(password, account.hashed_password)
        account.login_fail_count = 0 if verified else account.login_fail_count + 1
        fail_count = account.login_fail_count
        write_session.add(account)

    if not verified:
        logger.warning(
            f"Failed login for {account_model.__name__.lower()} '{login_id}' ({fail_count}/{limit})"
        )
        if fail_count >= limit:
            raise AccountLockedError(
                f"The account is locked after {limit} failed login attempts. "
                "Please contact the administrator."
            )
        raise AuthenticationError(
            f"Incorrect login id or password. {limit - fail_count} attempts remaining."
        )

    return account


def create_access_token(
    data: dict, expires_delta: datetime.timedelta | None = None
) -> str:
    """Create an access token with the provided data and expiration.

    Args:
        data (dict): The data to encode in the token.
        expires_delta (datetime.timedelta): The time delta until the token expires.

    Returns:
        encoded_jwt: The encoded JWT token.

    """
    to_encode = data.copy()
    now = datetime.datetime.now(datetime.timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + datetime.timedelta(minutes=st.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iss": st.JWT_ISSUER})
    encoded_jwt = jwt.encode(to_encode, st.JWT_SECRET_KEY, algorithm=st.JWT_ALGORITHM)
    return encoded_jwt


def sign_up_provider(sign_up: ProviderSignUp, write_session: Session) -> ProviderRead:
    """Register a provider. Only one nation account, and one local government
    account per region, may exist since they receive the public shares."""
    with db.transaction(write_session):
        if Provider.by_login_id(sign_up.login_id, write_session):
            raise ConflictError(f"Login id '{sign_up.login_id}' is already in use.")

        if sign_up.account_type == AccountType.NATION and Provider.nation(write_session):
            raise ConflictError("A nation account is already registered.")

        if (
            sign_up.account_type == AccountType.LOCAL_GOVERNMENT
            and sign_up.region is not None
            and Provider.local_government(sign_up.region, write_session)
        ):
            raise ConflictError(
                f"A local government account is already registered for {sign_up.region.label}."
            )

        provider_data = sign_up.model_dump(exclude={"password"})
        provider_data["hashed_password"] = get_password_hash(sign_up.password)
        provider = Provider.create(provider_data, write_session)[0]
        result = ProviderRead.model_validate(provider)

    logger.info(f"Registered {result.account_type.value} provider '{result.login_id}'")
    return result


def sign_up_consumer(sign_up: ConsumerSignUp, write_session: Session) -> ConsumerRead:
    with db.transaction(write_session):
        if Consumer.by_login_id(sign_up.login_id, write_session):
            raise ConflictError(f"Login id '{sign_up.login_id}' is already in use.")

        consumer_data = sign_up.model_dump(exclude={"password"})
        consumer_data["hashed_password"] = get_password_hash(sign_up.password)
        consumer = Consumer.create(consumer_data, write_session)[0]
        result = ConsumerRead.model_validate(consumer)

    logger.info(f"Registered consumer '{result.login_id}'")
    return result


async def get_current_principal(
    jwt_token: str | None = Depends(oauth2_scheme),
    read_session: Session = Depends(db.get_read_session),
) -> Principal:
    """Resolve the bearer token to the provider or consumer making the request.

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired or refers to
            an account that no longer exists.
    """
    if not jwt_token:
        raise MISSING_CREDENTIALS_EXCEPTION

    try:
        payload = jwt.decode(
            jwt_token,
            st.JWT_SECRET_KEY,
            algorithms=[st.JWT_ALGORITHM],
            issuer=st.JWT_ISSUER,
        )
        role = PrincipalRole(payload.get("role"))
    except (JWTError, ValueError):
        raise JWT_CREDENTIALS_EXCEPTION

    login_id: str | None = payload.get("sub")
    if not login_id:
        raise JWT_CREDENTIALS_EXCEPTION

    account_model = Provider if role == PrincipalRole.PROVIDER else Consumer
    account = account_model.by_login_id(login_id, read_session)
    if account is None or account.id is None:
        raise JWT_CREDENTIALS_EXCEPTION

    return Principal(role=role, id=account.id, login_id=login_id)


async def get_current_provider(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if principal.role != PrincipalRole.PROVIDER:
        raise AuthorizationError("This action is only available to providers.")
    return principal


async def get_current_consumer(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if principal.role != PrincipalRole.CONSUMER:
        raise AuthorizationError("This action is only available to consumers.")
    return principal
