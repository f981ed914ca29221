from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from trade_pulse.models import TradeInput
from trade_pulse.web import app as web_app


class FakeClient:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def generate_text(self, prompt, *, system_instruction=None, use_search=False):
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def client(monkeypatch, repository):
    monkeypatch.setattr(web_app, "_repository", lambda: repository)
    monkeypatch.setattr(web_app, "_analyst_client", lambda: None)
    return TestClient(web_app.app)


@pytest.fixture
def seeded(repository):
    repository.create(TradeInput("AAPL", 100.0, 150.0, 10, "2024-01-01"))
    repository.create(TradeInput("TSLA", 50.0, 40.0, 5, "2024-01-02"))
    repository.create(TradeInput("NVDA", 400.0, None, 2, "2024-02-10", "earnings"))
    return repository


def test_create_trade(client, repository):
    response = client.post(
        "/api/trades",
        json={"symbol": "msft", "buyPrice": "300", "sellPrice": "", "quantity": "4", "date": "2024-03-01"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["symbol"] == "MSFT"
    assert body["status"] == "HELD"
    assert body["sell_price"] is None
    assert repository.get(body["trade_id"]).quantity == 4


def test_create_trade_rejects_missing_fields(client, repository):
    response = client.post("/api/trades", json={"symbol": "MSFT", "buyPrice": "300"})
    assert response.status_code == 400
    assert repository.list_trades() == []


def test_create_trade_rejects_invalid_values(client, repository):
    response = client.post(
        "/api/trades",
        json={"symbol": "MSFT", "buyPrice": "300", "sellPrice": "-2", "quantity": "4", "date": "2024-03-01"},
    )
    assert response.status_code == 400
    assert repository.list_trades() == []


def test_update_and_delete(client, seeded):
    trade = seeded.list_trades()[2]
    response = client.put(
        f"/api/trades/{trade.trade_id}",
        json={"symbol": "NVDA", "buy_price": 400, "sell_price": 450, "quantity": 2, "date": "2024-02-11"},
    )
    assert response.status_code == 200
    assert response.json()["profit"] == pytest.approx(100.0)
    assert seeded.get(trade.trade_id).date == "2024-02-11"

    assert client.delete(f"/api/trades/{trade.trade_id}").json() == {"deleted": trade.trade_id}
    assert client.delete(f"/api/trades/{trade.trade_id}").status_code == 404
    assert client.put(
        "/api/trades/missing",
        json={"symbol": "NVDA", "buy_price": 1, "quantity": 1, "date": "2024-02-11"},
    ).status_code == 404


def test_trades_listing_is_filtered_and_newest_first(client, seeded):
    dates = [item["date"] for item in client.get("/api/trades").json()]
    assert dates == ["2024-02-10", "2024-01-02", "2024-01-01"]

    filtered = client.get(
        "/api/trades",
        params={"timeframe": "custom", "start": "2024-01-02", "end": "2024-02-09"},
    ).json()
    assert [item["symbol"] for item in filtered] == ["TSLA"]

    by_symbol = client.get("/api/trades", params={"symbol": "aa"}).json()
    assert [item["symbol"] for item in by_symbol] == ["AAPL"]


def test_summary(client, seeded):
    body = client.get("/api/summary").json()
    assert body["total_profit"] == pytest.approx(450.0)
    assert body["win_rate"] == pytest.approx(50.0)
    assert body["open_positions"] == 1
    assert body["best_trade"] == pytest.approx(500.0)
    assert body["worst_trade"] == pytest.approx(-50.0)


def test_bad_filters_are_rejected(client, seeded):
    assert client.get("/api/summary", params={"timeframe": "decade"}).status_code == 400
    assert client.get("/api/summary", params={"timeframe": "CUSTOM", "start": "soon"}).status_code == 400


def test_charts_and_portfolio(client, seeded):
    charts = client.get("/api/charts").json()
    assert [point["date"] for point in charts["daily_series"]] == ["2024-01-01", "2024-01-02"]
    assert charts["daily_series"][-1]["cumulative_profit"] == pytest.approx(450.0)
    assert [row["symbol"] for row in charts["symbol_ranking"]] == ["AAPL", "TSLA"]

    portfolio = client.get("/api/portfolio").json()
    assert [row["symbol"] for row in portfolio] == ["AAPL", "NVDA", "TSLA"]
    assert sum(row["percentage"] for row in portfolio) == pytest.approx(100.0)


def test_holdings_ignore_filters_and_fetch_prices(client, monkeypatch, seeded):
    body = client.get("/api/holdings", params={"symbol": "AAPL"}).json()
    assert [item["symbol"] for item in body["positions"]] == ["NVDA"]
    assert body["positions"][0]["current_price"] is None
    assert body["updated_at"] is None

    monkeypatch.setattr(web_app, "_analyst_client", lambda: FakeClient("NVDA trades at $440.00"))
    priced = client.get("/api/holdings", params={"prices": "true"}).json()
    assert priced["positions"][0]["current_price"] == pytest.approx(440.0)
    assert priced["positions"][0]["change_pct"] == pytest.approx(10.0)
    assert priced["updated_at"] is not None


def test_symbols(client, seeded):
    assert client.get("/api/symbols").json() == ["AAPL", "NVDA", "TSLA"]


def test_analysis_without_key(client, seeded):
    body = client.post("/api/analysis").json()
    assert body == {"analysis": "API Key not configured. Please check your environment settings."}


def test_analysis_with_client(client, monkeypatch, seeded):
    fake = FakeClient("**Profitable** overall.")
    monkeypatch.setattr(web_app, "_analyst_client", lambda: fake)

    body = client.post("/api/analysis", params={"symbol": "TSLA"}).json()

    assert body["analysis"] == "**Profitable** overall."
    assert "Total Trades (Including Held): 1" in fake.prompts[0]


def test_price_lookup(client, monkeypatch):
    assert client.get("/api/price/AAPL").json() is None

    monkeypatch.setattr(web_app, "_analyst_client", lambda: FakeClient("AAPL: $1,189.50"))
    body = client.get("/api/price/aapl").json()
    assert body["symbol"] == "AAPL"
    assert body["price"] == pytest.approx(1189.5)


def test_dashboard_renders(client, seeded):
    response = client.get("/", params={"timeframe": "ALL"})
    assert response.status_code == 200
    assert "Trade Pulse" in response.text
    assert "$450.00" in response.text
    assert "Live Holdings Watch" in response.text


def test_dashboard_renders_empty_journal(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "No closed trades for the selected filters." in response.text


def test_dashboard_draws_profit_chart_and_entry_form(client, seeded):
    text = client.get("/").text
    assert "<polyline" in text
    assert 'id="trade-form"' in text
    assert 'id="analysis-button"' in text


def test_profit_chart_scales_to_include_zero():
    chart = web_app.profit_chart(
        [
            {"date": "2024-01-01", "cumulative_profit": 500.0},
            {"date": "2024-01-02", "cumulative_profit": 450.0},
        ]
    )
    assert chart["points"] == "0.0,0.0 640.0,16.0"
    assert chart["zero_y"] == 160.0
    assert (chart["first_date"], chart["last_date"]) == ("2024-01-01", "2024-01-02")


def test_profit_chart_empty_series():
    assert web_app.profit_chart([]) is None


def test_create_trade_rejects_non_finite_price(client, repository):
    response = client.post(
        "/api/trades",
        json={"symbol": "AAPL", "buyPrice": "nan", "quantity": 1, "date": "2024-01-01"},
    )
    assert response.status_code == 400
    assert repository.list_trades() == []
