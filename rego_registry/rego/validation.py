from rego_registry.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientQuantityError,
)
from rego_registry.core.models.base import IssuedStatus, RegoStatus, RegoTradingStatus
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.power_generation.models import PowerGeneration
from rego_registry.rego.models import RegoGroup

# Transitions a REGO group can take, keyed by the state they start from
REGO_GROUP_TRANSITIONS: dict[
    tuple[RegoStatus, RegoTradingStatus], set[tuple[RegoStatus, RegoTradingStatus]]
] = {
    (RegoStatus.ACTIVE, RegoTradingStatus.BEFORE): {
        (RegoStatus.ACTIVE, RegoTradingStatus.TRADING),
        (RegoStatus.EXPIRED, RegoTradingStatus.END),
    },
    (RegoStatus.ACTIVE, RegoTradingStatus.TRADING): {
        (RegoStatus.ACTIVE, RegoTradingStatus.TRADING),
        (RegoStatus.USED, RegoTradingStatus.END),
        (RegoStatus.EXPIRED, RegoTradingStatus.END),
    },
    (RegoStatus.ACTIVE, RegoTradingStatus.END): {
        (RegoStatus.EXPIRED, RegoTradingStatus.END),
    },
}


def transition_rego_group(
    rego_group: RegoGroup,
    status: RegoStatus,
    trading_status: RegoTradingStatus,
) -> None:
    current = (rego_group.status, rego_group.trading_status)
    target = (status, trading_status)
    if target not in REGO_GROUP_TRANSITIONS.get(current, set()):
        err_msg = (
            f"REGO group {rego_group.identification_number} cannot move from "
            f"{current[0].value}/{current[1].value} to {status.value}/{trading_status.value}."
        )
        logger.error(err_msg)
        raise ConflictError(err_msg)

    rego_group.status = status
    rego_group.trading_status = trading_status


def validate_power_generation_issuable(
    power_generation: PowerGeneration, plant: Plant, provider_id: int
) -> None:
    if plant.provider_id != provider_id:
        err_msg = (
            f"Generation record {power_generation.id} belongs to plant {plant.plant_name}, "
            "which is not owned by the requesting provider."
        )
        logger.error(err_msg)
        raise AuthorizationError(err_msg)

    if power_generation.issued_status == IssuedStatus.YES:
        err_msg = (
            f"REGOs have already been issued for generation record {power_generation.id} "
            f"({plant.plant_name}, {power_generation.electricity_production_period})."
        )
        logger.error(err_msg)
        raise ConflictError(err_msg, details={"power_generation_id": power_generation.id})


def validate_rego_group_owner(rego_group: RegoGroup, provider_id: int) -> None:
    if rego_group.provider_id != provider_id:
        err_msg = (
            f"REGO group {rego_group.identification_number} is not owned by the requesting provider."
        )
        logger.error(err_msg)
        raise AuthorizationError(err_msg)


def validate_rego_group_sellable(rego_group: RegoGroup) -> None:
    if (rego_group.status, rego_group.trading_status) != (
        RegoStatus.ACTIVE,
        RegoTradingStatus.BEFORE,
    ):
        err_msg = (
            f"REGO group {rego_group.identification_number} is already listed or cannot be sold "
            f"(status {rego_group.status.value}, trading status {rego_group.trading_status.value})."
        )
        logger.error(err_msg)
        raise ConflictError(err_msg, details={"rego_group_id": rego_group.id})


def validate_rego_group_buyable(rego_group: RegoGroup, buying_amount: int) -> None:
    """Check that the group is on the market and can cover the requested amount.

    Raises:
        ConflictError: If the group is not in active/trading.
        InsufficientQuantityError: If fewer units remain than requested.
    """
    if (rego_group.status, rego_group.trading_status) != (
        RegoStatus.ACTIVE,
        RegoTradingStatus.TRADING,
    ):
        err_msg = (
            f"REGO group {rego_group.identification_number} is not currently available for purchase "
            f"(status {rego_group.status.value}, trading status {rego_group.trading_status.value})."
        )
        logger.error(err_msg)
        raise ConflictError(err_msg, details={"rego_group_id": rego_group.id})

    if rego_group.remaining_generation_amount < buying_amount:
        err_msg = (
            f"Only {rego_group.remaining_generation_amount} REGOs remain in group "
            f"{rego_group.identification_number}, {buying_amount} requested."
        )
        logger.error(err_msg)
        raise InsufficientQuantityError(
            err_msg,
            details={
                "rego_group_id": rego_group.id,
                "remaining_generation_amount": rego_group.remaining_generation_amount,
                "buying_amount": buying_amount,
            },
        )
