from fastapi.testclient import TestClient

from rego_registry.rego.models import RegoGroup
from rego_registry.rego_trade_info.models import RegoTradeInfo


class TestRegoTradeInfoRoutes:
    def test_buy_and_accept(
        self,
        api_client: TestClient,
        provider_token: str,
        consumer_token: str,
        fake_db_listed_rego_group: RegoGroup,
    ):
        response = api_client.post(
            "/rego-trade-info/buying",
            json={
                "regoGroupId": fake_db_listed_rego_group.id,
                "buyingAmount": 3,
                "buyingPrice": "1000",
            },
            headers={"Authorization": f"Bearer {consumer_token}"},
        )
        assert response.status_code == 201, response.json()
        trade = response.json()["data"]
        assert trade["tradingApplicationStatus"] == "pending"

        response = api_client.post(
            "/rego-trade-info/accept",
            json={"regoTradeInfoId": trade["id"]},
            headers={"Authorization": f"Bearer {provider_token}"},
        )
        assert response.status_code == 200, response.json()
        result = response.json()["data"]
        assert result["remainingGenerationAmount"] == 2
        assert result["identificationStartNumber"] == 1
        assert result["identificationEndNumber"] == 3
        assert result["regoTradeInfo"]["tradingApplicationStatus"] == "approve"

        # A second approval of the same trade is refused
        response = api_client.post(
            "/rego-trade-info/accept",
            json={"regoTradeInfoId": trade["id"]},
            headers={"Authorization": f"Bearer {provider_token}"},
        )
        assert response.status_code == 409
        assert response.json()["success"] is False
        assert "already been approved" in response.json()["message"]

        holdings = api_client.get(
            "/buying-rego",
            params={"regoStatus": "active"},
            headers={"Authorization": f"Bearer {consumer_token}"},
        )
        assert holdings.status_code == 200
        assert [h["buyingAmount"] for h in holdings.json()["data"]] == [3]

    def test_buy_more_than_remaining(
        self,
        api_client: TestClient,
        consumer_token: str,
        fake_db_listed_rego_group: RegoGroup,
    ):
        response = api_client.post(
            "/rego-trade-info/buying",
            json={
                "regoGroupId": fake_db_listed_rego_group.id,
                "buyingAmount": 6,
                "buyingPrice": "1000",
            },
            headers={"Authorization": f"Bearer {consumer_token}"},
        )

        assert response.status_code == 409
        assert response.json()["error_type"] == "insufficient_quantity"

    def test_buy_invalid_amount(
        self,
        api_client: TestClient,
        consumer_token: str,
        fake_db_listed_rego_group: RegoGroup,
    ):
        response = api_client.post(
            "/rego-trade-info/buying",
            json={
                "regoGroupId": fake_db_listed_rego_group.id,
                "buyingAmount": 0,
                "buyingPrice": "1000",
            },
            headers={"Authorization": f"Bearer {consumer_token}"},
        )

        assert response.status_code == 422
        assert response.json()["error_type"] == "validation_error"

    def test_refuse_trade(
        self,
        api_client: TestClient,
        provider_token: str,
        fake_db_trade: RegoTradeInfo,
    ):
        response = api_client.post(
            "/rego-trade-info/refuse",
            json={"regoTradeInfoId": fake_db_trade.id, "rejectedReason": "Price too low"},
            headers={"Authorization": f"Bearer {provider_token}"},
        )

        assert response.status_code == 200, response.json()
        assert response.json()["data"]["tradingApplicationStatus"] == "rejected"
        assert response.json()["data"]["rejectedReason"] == "Price too low"

    def test_cancel_trade(
        self,
        api_client: TestClient,
        provider_token: str,
        consumer_token: str,
        fake_db_trade: RegoTradeInfo,
    ):
        response = api_client.put(
            "/rego-trade-info/cancel",
            json={"regoTradeInfoId": fake_db_trade.id},
            headers={"Authorization": f"Bearer {consumer_token}"},
        )
        assert response.status_code == 200, response.json()
        assert response.json()["data"]["tradingApplicationStatus"] == "canceled"

        response = api_client.post(
            "/rego-trade-info/accept",
            json={"regoTradeInfoId": fake_db_trade.id},
            headers={"Authorization": f"Bearer {provider_token}"},
        )
        assert response.status_code == 409

        # Providers cannot cancel on behalf of the buyer
        response = api_client.put(
            "/rego-trade-info/cancel",
            json={"regoTradeInfoId": fake_db_trade.id},
            headers={"Authorization": f"Bearer {provider_token}"},
        )
        assert response.status_code == 403

    def test_list_trades_and_statistics(
        self,
        api_client: TestClient,
        provider_token: str,
        consumer_token: str,
        fake_db_trade: RegoTradeInfo,
    ):
        for token in (provider_token, consumer_token):
            response = api_client.get(
                "/rego-trade-info",
                params={"tradingApplicationStatus": "pending"},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert response.status_code == 200
            assert [t["id"] for t in response.json()["data"]] == [fake_db_trade.id]

        response = api_client.get(
            "/rego-trade-info/statistics",
            headers={"Authorization": f"Bearer {provider_token}"},
        )
        assert response.status_code == 200
        assert response.json()["data"] is None
