from sqlmodel import Field, Session, select

from rego_registry import utils
from rego_registry.plant.schemas import PlantBase


class Plant(PlantBase, utils.ActiveRecord, table=True):
    id: int | None = Field(default=None, primary_key=True)

    @classmethod
    def by_provider_id(cls, provider_id: int, session: Session) -> list["Plant"]:
        return list(
            session.exec(
                select(cls).where(cls.provider_id == provider_id).order_by(cls.id)
            ).all()
        )
