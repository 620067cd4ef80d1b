from collections import Counter

from sqlmodel import Session, select

from rego_registry.buying_rego.models import BuyingRego
from rego_registry.core.database import db
from rego_registry.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientQuantityError,
    NotFoundError,
    ValidationError,
)
from rego_registry.core.models.base import RegoStatus
from rego_registry.logging_config import logger
from rego_registry.rego_confirmation.models import (
    CertificationIssueRego,
    RegoConfirmation,
)
from rego_registry.rego_confirmation.schemas import (
    CertificationIssueRegoRead,
    RegoConfirmationDetailRead,
    RegoConfirmationIssueRequest,
    RegoConfirmationRead,
    UsageSelection,
)


def create_confirmation_number(rego_confirmation: RegoConfirmation) -> str:
    return f"P-{rego_confirmation.created_at.strftime('%Y-%m-%d')}-{rego_confirmation.id:04d}"


def validate_usage_selection(
    selection: UsageSelection, buying_rego: BuyingRego | None, consumer_id: int
) -> BuyingRego:
    if buying_rego is None:
        err_msg = f"Holding {selection.buying_rego_id} not found."
        logger.error(err_msg)
        raise NotFoundError(err_msg, details={"buying_rego_id": selection.buying_rego_id})

    if buying_rego.consumer_id != consumer_id:
        err_msg = f"Holding {selection.buying_rego_id} is not owned by the current consumer."
        logger.error(err_msg)
        raise AuthorizationError(err_msg, details={"buying_rego_id": selection.buying_rego_id})

    if buying_rego.rego_status != RegoStatus.ACTIVE:
        err_msg = (
            f"Holding {selection.buying_rego_id} is {buying_rego.rego_status.value} "
            "and cannot be used for a usage confirmation."
        )
        logger.error(err_msg)
        raise ConflictError(err_msg, details={"buying_rego_id": selection.buying_rego_id})

    if selection.usage_amount > buying_rego.buying_amount:
        err_msg = (
            f"Insufficient holding to redeem this amount: holding {selection.buying_rego_id} "
            f"has {buying_rego.buying_amount} REGOs, {selection.usage_amount} requested."
        )
        logger.error(err_msg)
        raise InsufficientQuantityError(
            err_msg,
            details={
                "buying_rego_id": selection.buying_rego_id,
                "buying_amount": buying_rego.buying_amount,
                "usage_amount": selection.usage_amount,
            },
        )

    return buying_rego


def redeem_holding(
    buying_rego: BuyingRego,
    usage_amount: int,
    write_session: Session,
) -> BuyingRego:
    """Consume ``usage_amount`` units from the front of a holding's range.

    Returns:
        BuyingRego: The holding that now records the consumed units; the original
            one when it is used up entirely, otherwise a new used holding split off it.
    """
    if usage_amount == buying_rego.buying_amount:
        buying_rego.buying_amount = 0
        buying_rego.rego_status = RegoStatus.USED
        write_session.add(buying_rego)
        return buying_rego

    consumed_start = buying_rego.identification_start_number
    consumed_end = consumed_start + usage_amount - 1

    buying_rego.buying_amount -= usage_amount
    buying_rego.identification_start_number = consumed_end + 1
    write_session.add(buying_rego)

    consumed = BuyingRego(
        consumer_id=buying_rego.consumer_id,
        rego_group_id=buying_rego.rego_group_id,
        rego_trade_info_id=buying_rego.rego_trade_info_id,
        identification_number=buying_rego.identification_number,
        identification_start_number=consumed_start,
        identification_end_number=consumed_end,
        buying_amount=usage_amount,
        rego_status=RegoStatus.USED,
    )
    write_session.add(consumed)
    write_session.flush()
    return consumed


def issue_confirmation(
    consumer_id: int,
    issue_request: RegoConfirmationIssueRequest,
    write_session: Session,
) -> RegoConfirmationDetailRead:
    """Redeem owned REGOs against the consumer's usage for a period.

    Every selection is validated before anything is written, so a single invalid
    selection leaves all holdings untouched. Holdings are then consumed in the
    order given: a partial redemption splits the consumed units off into a new
    used holding, a full redemption marks the holding itself as used. Each
    consumed holding is linked to the confirmation by one line item.

    Args:
        consumer_id (int): The consumer redeeming the REGOs.
        issue_request (RegoConfirmationIssueRequest): Selections and usage period.
        write_session (Session): The database session to write to.

    Returns:
        RegoConfirmationDetailRead: The confirmation with its line items.

    Raises:
        ValidationError: If no holding is selected or a holding is selected twice.
        NotFoundError: If a selected holding does not exist.
        AuthorizationError: If a selected holding belongs to another consumer.
        ConflictError: If a selected holding is no longer active.
        InsufficientQuantityError: If more units are requested than a holding has.
    """
    selections = issue_request.selections
    if not selections:
        err_msg = "At least one holding must be selected for a usage confirmation."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    duplicates = [
        buying_rego_id
        for buying_rego_id, count in Counter(s.buying_rego_id for s in selections).items()
        if count > 1
    ]
    if duplicates:
        err_msg = f"Holdings selected more than once: {sorted(duplicates)}"
        logger.error(err_msg)
        raise ValidationError(err_msg)

    with db.transaction(write_session):
        # Lock in id order, then validate in request order
        locked = {
            buying_rego.id: buying_rego
            for buying_rego in write_session.exec(
                select(BuyingRego)
                .where(BuyingRego.id.in_([s.buying_rego_id for s in selections]))  # type: ignore
                .order_by(BuyingRego.id)  # type: ignore
                .with_for_update()
            ).all()
        }
        holdings = [
            validate_usage_selection(
                selection, locked.get(selection.buying_rego_id), consumer_id
            )
            for selection in selections
        ]

        total_usage = sum(selection.usage_amount for selection in selections)
        rego_confirmation = RegoConfirmation(
            consumer_id=consumer_id,
            rego_usage_amount=total_usage,
            power_usage_amount=total_usage,
            usage_recognition_period=issue_request.usage_recognition_period,
        )
        write_session.add(rego_confirmation)
        write_session.flush()

        # The number embeds the id, which only exists after the insert
        rego_confirmation.confirmation_number = create_confirmation_number(rego_confirmation)
        write_session.add(rego_confirmation)

        line_items: list[CertificationIssueRego] = []
        for selection, buying_rego in zip(selections, holdings):
            consumed = redeem_holding(buying_rego, selection.usage_amount, write_session)
            line_item = CertificationIssueRego(
                buying_rego_id=consumed.id,  # type: ignore
                rego_confirmation_id=rego_confirmation.id,  # type: ignore
                usage_application_amount=selection.usage_amount,
            )
            write_session.add(line_item)
            line_items.append(line_item)

        write_session.flush()

        result = RegoConfirmationDetailRead.model_validate(
            {
                **RegoConfirmationRead.model_validate(rego_confirmation).model_dump(),
                "line_items": [
                    CertificationIssueRegoRead.model_validate(item) for item in line_items
                ],
            }
        )

    logger.info(
        f"Consumer {consumer_id} redeemed {total_usage} REGOs under confirmation "
        f"{result.confirmation_number}"
    )
    return result


def get_confirmations_by_consumer_id(
    consumer_id: int, read_session: Session
) -> list[RegoConfirmationRead]:
    rego_confirmations = read_session.exec(
        select(RegoConfirmation)
        .where(RegoConfirmation.consumer_id == consumer_id)
        .order_by(RegoConfirmation.created_at.desc(), RegoConfirmation.id.desc())  # type: ignore
    ).all()
    return [RegoConfirmationRead.model_validate(c) for c in rego_confirmations]


def get_confirmation_detail(
    rego_confirmation_id: int, consumer_id: int, read_session: Session
) -> RegoConfirmationDetailRead:
    rego_confirmation = RegoConfirmation.by_id(rego_confirmation_id, read_session)
    if rego_confirmation.consumer_id != consumer_id:
        err_msg = f"Usage confirmation {rego_confirmation_id} does not belong to the current consumer."
        logger.error(err_msg)
        raise AuthorizationError(err_msg)

    line_items = CertificationIssueRego.by_confirmation_id(rego_confirmation_id, read_session)
    return RegoConfirmationDetailRead.model_validate(
        {
            **RegoConfirmationRead.model_validate(rego_confirmation).model_dump(),
            "line_items": [CertificationIssueRegoRead.model_validate(i) for i in line_items],
        }
    )
