"""Splitting of a plant's generation between its stakeholders.

Certificates are only issued in whole units, so each stakeholder's share is
split into an integer allocation and a fraction. Fractions accumulate per
(stakeholder, plant) pair and are paid out as an extra unit once they add up
to at least one whole unit.
"""

import math
from decimal import ROUND_DOWN, Decimal

from pydantic import BaseModel

from rego_registry.core.exceptions import ValidationError
from rego_registry.core.models.base import StakeholderType
from rego_registry.logging_config import logger

THREE_PLACES = Decimal("0.001")
HUNDRED = Decimal("100")


class StakeholderShare(BaseModel):
    stakeholder_type: StakeholderType
    allocation: int
    remainder: Decimal


def truncate_to_three_decimals(value: Decimal) -> Decimal:
    """Round toward zero at the fourth decimal place."""
    return value.quantize(THREE_PLACES, rounding=ROUND_DOWN)


def share_of(generation_amount: Decimal, percentage: Decimal) -> Decimal:
    return truncate_to_three_decimals(generation_amount * percentage / HUNDRED)


def validate_percentages(percentages: dict[StakeholderType, Decimal]) -> None:
    missing = [s.value for s in StakeholderType if s not in percentages]
    if missing:
        err_msg = f"Supply percentages are missing for: {', '.join(missing)}"
        logger.error(err_msg)
        raise ValidationError(err_msg)

    if any(p < 0 for p in percentages.values()):
        err_msg = "Supply percentages cannot be negative."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    total = sum(percentages.values(), Decimal("0"))
    if total != HUNDRED:
        err_msg = f"Supply percentages must add up to 100, got {total}."
        logger.error(err_msg)
        raise ValidationError(err_msg, details={"total_percentage": str(total)})


def split_share(
    stakeholder_type: StakeholderType,
    generation_amount: Decimal,
    percentage: Decimal,
    carried_over_amount: Decimal,
) -> StakeholderShare:
    """Compute one stakeholder's whole-unit allocation for an issuance event.

    Args:
        stakeholder_type (StakeholderType): The stakeholder the share belongs to.
        generation_amount (Decimal): Metered generation of the record being issued.
        percentage (Decimal): The stakeholder's supply percentage for the plant.
        carried_over_amount (Decimal): Remainder stored for this stakeholder and plant.

    Returns:
        StakeholderShare: The integer allocation and the remainder to store.
    """
    if carried_over_amount < 0:
        err_msg = f"Carried over amount for {stakeholder_type.value} cannot be negative."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    share = share_of(generation_amount, percentage)
    integer_part = math.floor(share)
    accumulated = carried_over_amount + (share - integer_part)

    rolled_over = math.floor(integer_part + accumulated)
    if rolled_over > integer_part:
        return StakeholderShare(
            stakeholder_type=stakeholder_type,
            allocation=rolled_over,
            remainder=integer_part + accumulated - rolled_over,
        )

    return StakeholderShare(
        stakeholder_type=stakeholder_type,
        allocation=integer_part,
        remainder=accumulated,
    )


def split_generation_amount(
    generation_amount: Decimal,
    percentages: dict[StakeholderType, Decimal],
    carried_over_amounts: dict[StakeholderType, Decimal],
) -> dict[StakeholderType, StakeholderShare]:
    """Split a generation amount between owner, nation and local government.

    Raises:
        ValidationError: If the amount is negative or the percentages do not add up to 100.
    """
    if generation_amount < 0:
        err_msg = f"Generation amount cannot be negative, got {generation_amount}."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    validate_percentages(percentages)

    return {
        stakeholder_type: split_share(
            stakeholder_type,
            generation_amount,
            percentages[stakeholder_type],
            carried_over_amounts.get(stakeholder_type, Decimal("0")),
        )
        for stakeholder_type in StakeholderType
    }
