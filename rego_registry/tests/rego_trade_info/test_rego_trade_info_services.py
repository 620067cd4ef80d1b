import datetime
from decimal import Decimal

import pytest
from sqlmodel import Session, select

from rego_registry.buying_rego.models import BuyingRego
from rego_registry.consumer.models import Consumer
from rego_registry.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientQuantityError,
)
from rego_registry.core.models.base import (
    RegoStatus,
    RegoTradingStatus,
    TradingApplicationStatus,
)
from rego_registry.provider.models import Provider
from rego_registry.rego.models import RegoGroup
from rego_registry.rego.services import get_units_by_rego_group_id
from rego_registry.rego_trade_info.models import RegoTradeInfo
from rego_registry.rego_trade_info.schemas import (
    RegoBuyingRequest,
    RegoTradeInfoQuery,
)
from rego_registry.rego_trade_info.services import (
    accept_trade,
    cancel_trade,
    query_trades,
    record_trade_statistics,
    refuse_trade,
    request_buying,
)


class TestBuying:
    def test_request_buying(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_provider: Provider,
        fake_db_listed_rego_group: RegoGroup,
    ):
        trade = request_buying(
            fake_db_consumer.id,
            RegoBuyingRequest(
                rego_group_id=fake_db_listed_rego_group.id,
                buying_amount=3,
                buying_price=Decimal("1200.5"),
            ),
            write_session,
        )

        assert trade.trading_application_status == TradingApplicationStatus.PENDING
        assert trade.provider_id == fake_db_provider.id
        assert trade.consumer_id == fake_db_consumer.id
        assert trade.identification_number == fake_db_listed_rego_group.identification_number
        assert trade.buying_amount == 3

        # Requests do not reserve units
        rego_group = RegoGroup.by_id(fake_db_listed_rego_group.id, write_session)
        assert rego_group.remaining_generation_amount == 5

    def test_request_buying_group_not_on_market(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_rego_group: RegoGroup,
    ):
        with pytest.raises(ConflictError, match="not currently available") as exc_info:
            request_buying(
                fake_db_consumer.id,
                RegoBuyingRequest(
                    rego_group_id=fake_db_rego_group.id,
                    buying_amount=1,
                    buying_price=Decimal("1000"),
                ),
                write_session,
            )

        assert not isinstance(exc_info.value, InsufficientQuantityError)

    def test_request_buying_more_than_remaining(
        self,
        write_session: Session,
        fake_db_consumer: Consumer,
        fake_db_listed_rego_group: RegoGroup,
    ):
        with pytest.raises(InsufficientQuantityError, match="Only 5 REGOs remain"):
            request_buying(
                fake_db_consumer.id,
                RegoBuyingRequest(
                    rego_group_id=fake_db_listed_rego_group.id,
                    buying_amount=6,
                    buying_price=Decimal("1000"),
                ),
                write_session,
            )

        assert write_session.exec(select(RegoTradeInfo)).first() is None


class TestAccept:
    def test_accept_full_amount(
        self,
        write_session: Session,
        fake_db_provider: Provider,
        fake_db_consumer: Consumer,
        fake_db_listed_rego_group: RegoGroup,
        fake_db_trade: RegoTradeInfo,
    ):
        result = accept_trade(fake_db_provider.id, fake_db_trade.id, write_session)

        assert result.remaining_generation_amount == 0
        assert result.identification_start_number == 1
        assert result.identification_end_number == 5
        assert (
            result.rego_trade_info.trading_application_status
            == TradingApplicationStatus.APPROVE
        )
        assert result.rego_trade_info.trade_completed_date is not None

        rego_group = RegoGroup.by_id(fake_db_listed_rego_group.id, write_session)
        assert rego_group.remaining_generation_amount == 0
        assert rego_group.status == RegoStatus.USED
        assert rego_group.trading_status == RegoTradingStatus.END

        buying_rego = BuyingRego.by_id(result.buying_rego_id, write_session)
        assert buying_rego.consumer_id == fake_db_consumer.id
        assert buying_rego.buying_amount == 5
        assert buying_rego.rego_status == RegoStatus.ACTIVE
        assert (
            buying_rego.identification_start_number,
            buying_rego.identification_end_number,
        ) == (1, 5)

        units = get_units_by_rego_group_id(fake_db_listed_rego_group.id, write_session)
        assert all(unit.consumer_id == fake_db_consumer.id for unit in units)

    def test_accept_partial_amount(
        self,
        write_session: Session,
        trade_factory,
        fake_db_provider: Provider,
        fake_db_consumer: Consumer,
        fake_db_consumer_2: Consumer,
        fake_db_listed_rego_group: RegoGroup,
    ):
        first_trade = trade_factory(fake_db_consumer, fake_db_listed_rego_group, 3)
        second_trade = trade_factory(fake_db_consumer_2, fake_db_listed_rego_group, 2)

        first = accept_trade(fake_db_provider.id, first_trade.id, write_session)

        assert first.remaining_generation_amount == 2
        assert (first.identification_start_number, first.identification_end_number) == (1, 3)
        rego_group = RegoGroup.by_id(fake_db_listed_rego_group.id, write_session)
        assert rego_group.status == RegoStatus.ACTIVE
        assert rego_group.trading_status == RegoTradingStatus.TRADING

        second = accept_trade(fake_db_provider.id, second_trade.id, write_session)

        # Units are sold in sequence order
        assert (second.identification_start_number, second.identification_end_number) == (4, 5)
        assert second.remaining_generation_amount == 0
        rego_group = RegoGroup.by_id(fake_db_listed_rego_group.id, write_session)
        assert rego_group.status == RegoStatus.USED
        assert rego_group.trading_status == RegoTradingStatus.END

        owners = [
            unit.consumer_id
            for unit in get_units_by_rego_group_id(fake_db_listed_rego_group.id, write_session)
        ]
        assert owners == [fake_db_consumer.id] * 3 + [fake_db_consumer_2.id] * 2

    def test_accept_twice(
        self,
        write_session: Session,
        fake_db_provider: Provider,
        fake_db_listed_rego_group: RegoGroup,
        fake_db_trade: RegoTradeInfo,
    ):
        accept_trade(fake_db_provider.id, fake_db_trade.id, write_session)

        with pytest.raises(ConflictError, match="already been approved"):
            accept_trade(fake_db_provider.id, fake_db_trade.id, write_session)

        assert len(write_session.exec(select(BuyingRego)).all()) == 1

    def test_accept_revalidates_remaining_amount(
        self,
        write_session: Session,
        trade_factory,
        fake_db_provider: Provider,
        fake_db_consumer: Consumer,
        fake_db_consumer_2: Consumer,
        fake_db_listed_rego_group: RegoGroup,
    ):
        first_trade = trade_factory(fake_db_consumer, fake_db_listed_rego_group, 4)
        second_trade = trade_factory(fake_db_consumer_2, fake_db_listed_rego_group, 3)

        accept_trade(fake_db_provider.id, first_trade.id, write_session)

        with pytest.raises(InsufficientQuantityError):
            accept_trade(fake_db_provider.id, second_trade.id, write_session)

        # The failed approval leaves the trade pending and the group untouched
        second_trade = RegoTradeInfo.by_id(second_trade.id, write_session)
        assert second_trade.trading_application_status == TradingApplicationStatus.PENDING
        rego_group = RegoGroup.by_id(fake_db_listed_rego_group.id, write_session)
        assert rego_group.remaining_generation_amount == 1

    def test_accept_trade_of_another_provider(
        self,
        write_session: Session,
        fake_db_provider_2: Provider,
        fake_db_trade: RegoTradeInfo,
    ):
        with pytest.raises(AuthorizationError):
            accept_trade(fake_db_provider_2.id, fake_db_trade.id, write_session)


class TestRefuseAndCancel:
    def test_refuse_trade(
        self,
        write_session: Session,
        fake_db_provider: Provider,
        fake_db_listed_rego_group: RegoGroup,
        fake_db_trade: RegoTradeInfo,
    ):
        trade = refuse_trade(
            fake_db_provider.id, fake_db_trade.id, "Price too low", write_session
        )

        assert trade.trading_application_status == TradingApplicationStatus.REJECTED
        assert trade.rejected_reason == "Price too low"

        rego_group = RegoGroup.by_id(fake_db_listed_rego_group.id, write_session)
        assert rego_group.remaining_generation_amount == 5
        assert rego_group.trading_status == RegoTradingStatus.TRADING

        with pytest.raises(ConflictError, match="already been rejected"):
            accept_trade(fake_db_provider.id, fake_db_trade.id, write_session)

    def test_cancel_trade(
        self,
        write_session: Session,
        fake_db_provider: Provider,
        fake_db_consumer: Consumer,
        fake_db_trade: RegoTradeInfo,
    ):
        trade = cancel_trade(fake_db_consumer.id, fake_db_trade.id, write_session)

        assert trade.trading_application_status == TradingApplicationStatus.CANCELED

        with pytest.raises(ConflictError, match="cancelled by the buyer"):
            cancel_trade(fake_db_consumer.id, fake_db_trade.id, write_session)

        with pytest.raises(ConflictError, match="cancelled by the buyer"):
            refuse_trade(fake_db_provider.id, fake_db_trade.id, "too late", write_session)

    def test_cancel_trade_of_another_consumer(
        self,
        write_session: Session,
        fake_db_consumer_2: Consumer,
        fake_db_trade: RegoTradeInfo,
    ):
        with pytest.raises(AuthorizationError):
            cancel_trade(fake_db_consumer_2.id, fake_db_trade.id, write_session)


class TestTradeQueries:
    def test_query_trades_scoped_to_caller(
        self,
        write_session: Session,
        trade_factory,
        fake_db_provider: Provider,
        fake_db_provider_2: Provider,
        fake_db_consumer: Consumer,
        fake_db_consumer_2: Consumer,
        fake_db_listed_rego_group: RegoGroup,
    ):
        trade_factory(fake_db_consumer, fake_db_listed_rego_group, 1)
        trade_factory(fake_db_consumer_2, fake_db_listed_rego_group, 2)

        sales = query_trades(
            RegoTradeInfoQuery(), write_session, provider_id=fake_db_provider.id
        )
        assert len(sales) == 2
        assert {trade.consumer_account_name for trade in sales} == {
            fake_db_consumer.account_name,
            fake_db_consumer_2.account_name,
        }
        assert sales[0].electricity_production_period == "2024-03"

        requests = query_trades(
            RegoTradeInfoQuery(), write_session, consumer_id=fake_db_consumer_2.id
        )
        assert [trade.buying_amount for trade in requests] == [2]

        filtered = query_trades(
            RegoTradeInfoQuery(buyer_name="buyer_one"),
            write_session,
            provider_id=fake_db_provider.id,
        )
        assert [trade.consumer_id for trade in filtered] == [fake_db_consumer.id]

        assert (
            query_trades(RegoTradeInfoQuery(), write_session, provider_id=fake_db_provider_2.id)
            == []
        )

    def test_record_trade_statistics(
        self,
        write_session: Session,
        trade_factory,
        fake_db_provider: Provider,
        fake_db_consumer: Consumer,
        fake_db_consumer_2: Consumer,
        fake_db_listed_rego_group: RegoGroup,
    ):
        first_trade = trade_factory(
            fake_db_consumer, fake_db_listed_rego_group, 2, Decimal("1000")
        )
        second_trade = trade_factory(
            fake_db_consumer_2, fake_db_listed_rego_group, 3, Decimal("2000")
        )
        pending_trade = trade_factory(
            fake_db_consumer, fake_db_listed_rego_group, 1, Decimal("9000")
        )
        accept_trade(fake_db_provider.id, first_trade.id, write_session)
        accept_trade(fake_db_provider.id, second_trade.id, write_session)

        statistics = record_trade_statistics(
            write_session,
            window_end=datetime.datetime.now(datetime.timezone.utc)
            + datetime.timedelta(hours=1),
        )

        assert statistics.trade_count == 2
        assert statistics.total_quantity == 5
        assert statistics.average_price == Decimal("1500")
        # Pending trades are not counted
        assert pending_trade.trading_application_status == TradingApplicationStatus.PENDING
