# backend/tests/routers/test_analytics_api.py
"""
Integration tests for the analytics endpoints.

- GET  /portfolios/{id}/summary
- GET  /portfolios/{id}/allocation
- GET  /portfolios/{id}/rebalance
- GET  /portfolios/{id}/performance
- POST /portfolios/{id}/performance/snapshot
"""

from datetime import date
from decimal import Decimal

import pytest

from tests.conftest import create_holding, create_portfolio, create_snapshot, owner_headers


@pytest.fixture
def portfolio(db, mock_provider):
    """Targets 50/50, actual 93.75/6.25."""
    portfolio = create_portfolio(db)
    create_holding(db, portfolio, "AAPL", "15", "100", target_allocation_percent="50", sector="Technology")
    create_holding(db, portfolio, "XOM", "1", "100", target_allocation_percent="50", sector="Energy")
    mock_provider.add_quote("AAPL", "100", change="2", change_percent="2.0408")
    mock_provider.add_quote("XOM", "100")
    mock_provider.add_quote("SPY", "500", change="5", change_percent="1.0")
    mock_provider.add_quote("QQQ", "400")
    return portfolio


class TestSummary:

    def test_summary(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/summary", headers=owner_headers())

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["holdings_value"]) == Decimal("1600")
        assert Decimal(body["cash_balance"]) == Decimal("0")
        assert Decimal(body["day_change"]) == Decimal("30")
        assert body["holdings_count"] == 2
        assert body["unavailable_count"] == 0
        assert body["benchmark_symbol"] == "SPY"
        assert body["daily_alpha"] is not None

    def test_summary_survives_outage(self, client, mock_provider, portfolio):
        mock_provider.fail_batch()

        body = client.get(f"/portfolios/{portfolio.id}/summary", headers=owner_headers()).json()

        assert Decimal(body["holdings_value"]) == Decimal("0")
        assert body["unavailable_count"] == 2

    def test_other_owner(self, client, portfolio):
        assert client.get(f"/portfolios/{portfolio.id}/summary", headers=owner_headers(2)).status_code == 404


class TestAllocation:

    def test_sector_allocation(self, client, portfolio):
        body = client.get(f"/portfolios/{portfolio.id}/allocation", headers=owner_headers()).json()

        assert [a["sector"] for a in body] == ["Technology", "Energy"]
        assert Decimal(body[0]["weight_percent"]) == Decimal("93.75")
        assert body[0]["symbols"] == ["AAPL"]


class TestRebalance:

    def test_two_suggestions(self, client, portfolio):
        response = client.get(
            f"/portfolios/{portfolio.id}/rebalance", params={"threshold": "2"}, headers=owner_headers()
        )

        assert response.status_code == 200
        body = response.json()
        assert sorted(s["action"] for s in body) == ["BUY", "SELL"]
        assert {s["symbol"]: s["action"] for s in body} == {"AAPL": "SELL", "XOM": "BUY"}

    def test_high_threshold_suggests_nothing(self, client, portfolio):
        body = client.get(
            f"/portfolios/{portfolio.id}/rebalance", params={"threshold": "50"}, headers=owner_headers()
        ).json()
        assert body == []

    def test_negative_threshold_is_400(self, client, portfolio):
        response = client.get(
            f"/portfolios/{portfolio.id}/rebalance", params={"threshold": "-1"}, headers=owner_headers()
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "threshold"


class TestPerformance:

    def test_record_snapshot(self, client, portfolio):
        response = client.post(
            f"/portfolios/{portfolio.id}/performance/snapshot",
            params={"as_of": "2024-03-01"},
            headers=owner_headers(),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["date"] == "2024-03-01"
        assert Decimal(body["total_equity"]) == Decimal("1600")
        assert body["daily_return_percent"] is None
        assert Decimal(body["benchmark_primary_close"]) == Decimal("500")

    def test_history(self, client, db, portfolio):
        create_snapshot(db, portfolio, date(2024, 1, 2), "1000", "400")
        create_snapshot(db, portfolio, date(2024, 1, 3), "1050", "404")

        response = client.get(
            f"/portfolios/{portfolio.id}/performance",
            params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
            headers=owner_headers(),
        )

        assert response.status_code == 200
        points = response.json()
        assert [p["date"] for p in points] == ["2024-01-02", "2024-01-03"]
        assert Decimal(points[1]["portfolio_return_percent"]) == Decimal("5")
        assert Decimal(points[1]["benchmark_primary_return_percent"]) == Decimal("1")
        assert points[1]["benchmark_secondary_return_percent"] is None

    def test_inverted_range_is_400(self, client, portfolio):
        response = client.get(
            f"/portfolios/{portfolio.id}/performance",
            params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
            headers=owner_headers(),
        )
        assert response.status_code == 400

    def test_snapshot_for_other_owner(self, client, portfolio):
        response = client.post(f"/portfolios/{portfolio.id}/performance/snapshot", headers=owner_headers(2))
        assert response.status_code == 404
