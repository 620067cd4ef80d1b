from sqlmodel import Session, select

from rego_registry.buying_rego.models import BuyingRego
from rego_registry.buying_rego.schemas import BuyingRegoListRead, BuyingRegoRead
from rego_registry.core.models.base import RegoStatus
from rego_registry.plant.models import Plant
from rego_registry.rego.models import RegoGroup


def get_buying_regos_by_consumer_id(
    consumer_id: int,
    read_session: Session,
    rego_status: RegoStatus | None = None,
) -> list[BuyingRegoListRead]:
    """List a consumer's holdings together with the batch and plant they come from."""
    stmt = (
        select(BuyingRego, RegoGroup, Plant)
        .join(RegoGroup, RegoGroup.id == BuyingRego.rego_group_id)  # type: ignore
        .join(Plant, Plant.id == RegoGroup.plant_id)  # type: ignore
        .where(BuyingRego.consumer_id == consumer_id)
    )
    if rego_status is not None:
        stmt = stmt.where(BuyingRego.rego_status == rego_status)
    stmt = stmt.order_by(BuyingRego.id.desc())  # type: ignore

    return [
        BuyingRegoListRead.model_validate(
            {
                **BuyingRegoRead.model_validate(buying_rego).model_dump(),
                "plant_id": plant.id,
                "plant_name": plant.plant_name,
                "energy_source": plant.energy_source,
                "electricity_production_period": rego_group.electricity_production_period,
                "expired_date": rego_group.expired_date,
            }
        )
        for buying_rego, rego_group, plant in read_session.exec(stmt)
    ]
