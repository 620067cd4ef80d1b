from sqlmodel import Field, Session, select

from rego_registry import utils
from rego_registry.rego_confirmation.schemas import RegoConfirmationBase


class RegoConfirmation(RegoConfirmationBase, utils.ActiveRecord, table=True):
    __tablename__: str = "rego_confirmation"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)


class CertificationIssueRego(utils.ActiveRecord, table=True):
    """Line item of a usage confirmation: how much of one holding it consumed."""

    __tablename__: str = "certification_issue_rego"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
    buying_rego_id: int = Field(foreign_key="buying_rego.id", index=True)
    rego_confirmation_id: int = Field(foreign_key="rego_confirmation.id", index=True)
    usage_application_amount: int = Field(gt=0)

    @classmethod
    def by_confirmation_id(
        cls, rego_confirmation_id: int, session: Session
    ) -> list["CertificationIssueRego"]:
        return list(
            session.exec(
                select(cls)
                .where(cls.rego_confirmation_id == rego_confirmation_id)
                .order_by(cls.id)  # type: ignore
            ).all()
        )
