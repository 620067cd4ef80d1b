from sqlmodel import Field, Session, select

from rego_registry import utils
from rego_registry.core.models.base import AccountType, Region
from rego_registry.provider.schemas import ProviderBase


class Provider(ProviderBase, utils.ActiveRecord, table=True):
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    login_fail_count: int = Field(default=0)
    is_first_login: bool = Field(default=True)

    @classmethod
    def by_login_id(cls, login_id: str, session: Session) -> "Provider | None":
        return session.exec(select(cls).where(cls.login_id == login_id)).first()

    @classmethod
    def nation(cls, session: Session) -> "Provider | None":
        return session.exec(
            select(cls).where(cls.account_type == AccountType.NATION)
        ).first()

    @classmethod
    def local_government(cls, region: Region, session: Session) -> "Provider | None":
        return session.exec(
            select(cls).where(
                cls.account_type == AccountType.LOCAL_GOVERNMENT,
                cls.region == region,
            )
        ).first()
