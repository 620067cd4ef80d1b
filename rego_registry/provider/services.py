from decimal import Decimal

from sqlmodel import Session

from rego_registry.core.exceptions import AuthorizationError
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.provider.models import Provider
from rego_registry.provider.schemas import CarriedOverAmountRead
from rego_registry.rego.models import ProviderPlantCarriedAmount


def _carried_amount(provider: Provider | None, plant_id: int, read_session: Session) -> Decimal:
    if provider is None or provider.id is None:
        return Decimal("0")
    row = ProviderPlantCarriedAmount.get(provider.id, plant_id, read_session)
    return Decimal(row.carried_over_power_gen_amount) if row else Decimal("0")


def get_carried_over_amounts(
    provider_id: int, plant_id: int, read_session: Session
) -> CarriedOverAmountRead:
    """Return the remainders waiting to become whole certificates for each of the
    plant's stakeholders."""
    plant = Plant.by_id(plant_id, read_session)
    if plant.provider_id != provider_id:
        err_msg = f"Plant {plant_id} is not owned by the requesting provider."
        logger.error(err_msg)
        raise AuthorizationError(err_msg)

    owner = Provider.by_id(provider_id, read_session)
    return CarriedOverAmountRead(
        plant_id=plant_id,
        self_carried_over_amount=_carried_amount(owner, plant_id, read_session),
        nation_carried_over_amount=_carried_amount(
            Provider.nation(read_session), plant_id, read_session
        ),
        local_government_carried_over_amount=_carried_amount(
            Provider.local_government(plant.region, read_session), plant_id, read_session
        ),
    )
