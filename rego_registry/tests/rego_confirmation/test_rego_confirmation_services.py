import re
from decimal import Decimal

import pytest
from sqlmodel import Session, func, select

from rego_registry.buying_rego.models import BuyingRego
from rego_registry.buying_rego.services import get_buying_regos_by_consumer_id
from rego_registry.consumer.models import Consumer
from rego_registry.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientQuantityError,
    NotFoundError,
    ValidationError,
)
from rego_registry.core.models.base import RegoStatus
from rego_registry.plant.models import Plant
from rego_registry.provider.models import Provider
from rego_registry.rego.models import RegoGroup
from rego_registry.rego.services import issue_regos, list_rego_groups_for_sale
from rego_registry.rego_confirmation.models import RegoConfirmation
from rego_registry.rego_confirmation.schemas import (
    RegoConfirmationIssueRequest,
    UsageSelection,
)
from rego_registry.rego_confirmation.services import (
    get_confirmation_detail,
    get_confirmations_by_consumer_id,
    issue_confirmation,
)
from rego_registry.rego_trade_info.models import RegoTradeInfo
from rego_registry.rego_trade_info.services import accept_trade


@pytest.fixture()
def fake_db_buying_rego(
    write_session: Session,
    fake_db_provider: Provider,
    fake_db_trade: RegoTradeInfo,
) -> BuyingRego:
    """An active holding of units 1..5 owned by the first consumer."""
    result = accept_trade(fake_db_provider.id, fake_db_trade.id, write_session)
    return BuyingRego.by_id(result.buying_rego_id, write_session)


@pytest.fixture()
def fake_db_small_buying_rego(
    write_session: Session,
    trade_factory,
    power_generation_factory,
    fake_db_provider: Provider,
    fake_db_consumer: Consumer,
    fake_db_owner_plant: Plant,
) -> BuyingRego:
    """A second active holding of 2 units owned by the first consumer."""
    power_generation = power_generation_factory(
        fake_db_owner_plant, "2024-05", Decimal("2")
    )
    rego_group_id = issue_regos(
        fake_db_provider.id, [power_generation.id], write_session
    ).rego_groups[0].id
    list_rego_groups_for_sale(fake_db_provider.id, [rego_group_id], write_session)
    trade = trade_factory(
        fake_db_consumer, RegoGroup.by_id(rego_group_id, write_session), 2
    )
    result = accept_trade(fake_db_provider.id, trade.id, write_session)
    return BuyingRego.by_id(result.buying_rego_id, write_session)


def issue_request(*selections: tuple[int, int]) -> RegoConfirmationIssueRequest:
    return RegoConfirmationIssueRequest(
        selections=[
            UsageSelection(buying_rego_id=buying_rego_id, usage_amount=usage_amount)
            for buying_rego_id, usage_amount in selections
        ],
        usage_recognition_period="2024-06",
    )


class TestRegoConfirmation:
    def test_partial_redemption(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_buying_rego: BuyingRego,
    ):
        confirmation = issue_confirmation(
            fake_db_consumer.id,
            issue_request((fake_db_buying_rego.id, 3)),
            write_session,
        )

        assert confirmation.rego_usage_amount == 3
        assert confirmation.power_usage_amount == 3
        assert confirmation.usage_recognition_period == "2024-06"
        assert len(confirmation.line_items) == 1

        remaining = BuyingRego.by_id(fake_db_buying_rego.id, write_session)
        assert remaining.rego_status == RegoStatus.ACTIVE
        assert remaining.buying_amount == 2
        assert (
            remaining.identification_start_number,
            remaining.identification_end_number,
        ) == (4, 5)

        consumed = BuyingRego.by_id(confirmation.line_items[0].buying_rego_id, write_session)
        assert consumed.id != remaining.id
        assert consumed.rego_status == RegoStatus.USED
        assert consumed.buying_amount == 3
        assert (
            consumed.identification_start_number,
            consumed.identification_end_number,
        ) == (1, 3)
        assert consumed.identification_number == remaining.identification_number

    def test_full_redemption(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_buying_rego: BuyingRego,
    ):
        confirmation = issue_confirmation(
            fake_db_consumer.id,
            issue_request((fake_db_buying_rego.id, 5)),
            write_session,
        )

        assert confirmation.line_items[0].buying_rego_id == fake_db_buying_rego.id
        assert confirmation.line_items[0].usage_application_amount == 5

        holding = BuyingRego.by_id(fake_db_buying_rego.id, write_session)
        assert holding.rego_status == RegoStatus.USED
        assert holding.buying_amount == 0
        assert write_session.exec(select(func.count()).select_from(BuyingRego)).one() == 1

        # A used holding cannot be redeemed again
        with pytest.raises(ConflictError, match="used"):
            issue_confirmation(
                fake_db_consumer.id,
                issue_request((fake_db_buying_rego.id, 1)),
                write_session,
            )

    def test_confirmation_number(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_buying_rego: BuyingRego,
    ):
        confirmation = issue_confirmation(
            fake_db_consumer.id,
            issue_request((fake_db_buying_rego.id, 1)),
            write_session,
        )

        assert confirmation.confirmation_number is not None
        assert re.fullmatch(r"P-\d{4}-\d{2}-\d{2}-\d{4}", confirmation.confirmation_number)
        assert confirmation.confirmation_number == (
            f"P-{confirmation.created_at.strftime('%Y-%m-%d')}-{confirmation.id:04d}"
        )

    def test_multiple_holdings(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_buying_rego: BuyingRego,
        fake_db_small_buying_rego: BuyingRego,
    ):
        confirmation = issue_confirmation(
            fake_db_consumer.id,
            issue_request((fake_db_buying_rego.id, 4), (fake_db_small_buying_rego.id, 2)),
            write_session,
        )

        assert confirmation.rego_usage_amount == 6
        assert [item.usage_application_amount for item in confirmation.line_items] == [4, 2]

        active = get_buying_regos_by_consumer_id(
            fake_db_consumer.id, write_session, rego_status=RegoStatus.ACTIVE
        )
        assert [(holding.id, holding.buying_amount) for holding in active] == [
            (fake_db_buying_rego.id, 1)
        ]
        assert active[0].electricity_production_period == "2024-03"

        detail = get_confirmation_detail(confirmation.id, fake_db_consumer.id, write_session)
        assert detail.confirmation_number == confirmation.confirmation_number
        assert detail.line_items == confirmation.line_items

    def test_redemption_is_all_or_nothing(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_buying_rego: BuyingRego,
        fake_db_small_buying_rego: BuyingRego,
    ):
        with pytest.raises(
            InsufficientQuantityError, match="Insufficient holding to redeem this amount"
        ):
            issue_confirmation(
                fake_db_consumer.id,
                issue_request((fake_db_buying_rego.id, 2), (fake_db_small_buying_rego.id, 3)),
                write_session,
            )

        holding = BuyingRego.by_id(fake_db_buying_rego.id, write_session)
        assert holding.buying_amount == 5
        assert holding.rego_status == RegoStatus.ACTIVE
        assert write_session.exec(select(RegoConfirmation)).first() is None

    def test_redeem_holding_of_another_consumer(
        self,
        write_session: Session,
        fake_db_consumer_2: Consumer,
        fake_db_buying_rego: BuyingRego,
    ):
        with pytest.raises(AuthorizationError):
            issue_confirmation(
                fake_db_consumer_2.id,
                issue_request((fake_db_buying_rego.id, 1)),
                write_session,
            )

    def test_rejects_bad_selections(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_buying_rego: BuyingRego,
    ):
        with pytest.raises(ValidationError):
            issue_confirmation(fake_db_consumer.id, issue_request(), write_session)

        with pytest.raises(ValidationError, match="more than once"):
            issue_confirmation(
                fake_db_consumer.id,
                issue_request((fake_db_buying_rego.id, 1), (fake_db_buying_rego.id, 1)),
                write_session,
            )

        with pytest.raises(NotFoundError):
            issue_confirmation(fake_db_consumer.id, issue_request((999, 1)), write_session)

    def test_list_and_detail(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_consumer_2: Consumer,
        fake_db_buying_rego: BuyingRego,
    ):
        first = issue_confirmation(
            fake_db_consumer.id, issue_request((fake_db_buying_rego.id, 1)), write_session
        )
        second = issue_confirmation(
            fake_db_consumer.id, issue_request((fake_db_buying_rego.id, 1)), write_session
        )

        confirmations = get_confirmations_by_consumer_id(fake_db_consumer.id, write_session)
        assert [c.id for c in confirmations] == [second.id, first.id]
        assert get_confirmations_by_consumer_id(fake_db_consumer_2.id, write_session) == []

        with pytest.raises(AuthorizationError):
            get_confirmation_detail(first.id, fake_db_consumer_2.id, write_session)
