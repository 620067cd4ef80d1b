from sqlmodel import Field, Session, select

from rego_registry import utils
from rego_registry.consumer.schemas import ConsumerBase


class Consumer(ConsumerBase, utils.ActiveRecord, table=True):
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    login_fail_count: int = Field(default=0)

    @classmethod
    def by_login_id(cls, login_id: str, session: Session) -> "Consumer | None":
        return session.exec(select(cls).where(cls.login_id == login_id)).first()
