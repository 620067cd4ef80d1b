from decimal import Decimal

from sqlmodel import Session

from rego_registry.core.database import db
from rego_registry.core.exceptions import AuthorizationError, ValidationError
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.plant.schemas import PlantRead, PlantSupplyPriceUpdate
from rego_registry.rego.splitter import HUNDRED, truncate_to_three_decimals


def compute_supply_percentages(
    self_supply_price: Decimal,
    nation_supply_price: Decimal,
    local_government_supply_price: Decimal,
) -> tuple[Decimal, Decimal, Decimal]:
    """Derive each stakeholder's percentage from the supply prices.

    Percentages are truncated to three decimals and must still add up to exactly
    100, otherwise issuance for the plant would not reconcile.

    Raises:
        ValidationError: If every price is zero or the truncated percentages do not add up to 100.
    """
    total = self_supply_price + nation_supply_price + local_government_supply_price
    if total <= 0:
        err_msg = "At least one supply price must be greater than zero."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    percentages = tuple(
        truncate_to_three_decimals(price * HUNDRED / total)
        for price in (self_supply_price, nation_supply_price, local_government_supply_price)
    )
    if sum(percentages) != HUNDRED:
        err_msg = (
            f"The supply prices give percentages of {', '.join(str(p) for p in percentages)} "
            f"which add up to {sum(percentages)} rather than 100. Please adjust the prices."
        )
        logger.error(err_msg)
        raise ValidationError(err_msg)

    return percentages  # type: ignore


def update_supply_prices(
    plant_id: int,
    provider_id: int,
    price_update: PlantSupplyPriceUpdate,
    write_session: Session,
) -> PlantRead:
    with db.transaction(write_session):
        plant = Plant.by_id(plant_id, write_session, for_update=True)
        if plant.provider_id != provider_id:
            err_msg = f"Plant {plant_id} is not owned by the requesting provider."
            logger.error(err_msg)
            raise AuthorizationError(err_msg)

        self_percent, nation_percent, local_percent = compute_supply_percentages(
            price_update.self_supply_price,
            price_update.nation_supply_price,
            price_update.local_government_supply_price,
        )
        plant.update(
            {
                "self_supply_price": price_update.self_supply_price,
                "nation_supply_price": price_update.nation_supply_price,
                "local_government_supply_price": price_update.local_government_supply_price,
                "self_supply_price_percent": self_percent,
                "nation_supply_price_percent": nation_percent,
                "local_government_supply_price_percent": local_percent,
            },
            write_session,
        )
        result = PlantRead.model_validate(plant)

    logger.info(
        f"Updated supply percentages of plant {plant_id} to "
        f"{self_percent}/{nation_percent}/{local_percent}"
    )
    return result
