from __future__ import annotations

from decimal import Decimal

import pytest

import deposit_calc_web.app as web
from deposit_calc_web.history_store import HistoryStore


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(web, "history_store", HistoryStore(f"sqlite:///{tmp_path / 'web.sqlite3'}"))
    web.app.config["TESTING"] = True
    with web.app.test_client() as client:
        yield client


def form_payload(**overrides) -> dict:
    data = {
        "principal": "1,000,000.00",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "interest_type": "simple",
        "apply_type": "annually",
        "tier_min": ["1.00", "1000000.01", ""],
        "tier_max": ["1000000.00", "", ""],
        "tier_rate": ["2.00", "0.50", ""],
    }
    data.update(overrides)
    return data


def test_index_shows_default_tiers(client):
    resp = client.get("/")
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert "Deposit Interest Calculator" in html
    assert 'value="2000000.01"' in html


def test_form_calculation_is_rendered_and_saved(client):
    resp = client.post("/", data=form_payload())
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert "20,054.79" in html
    assert "December 2024" in html

    history = client.get("/api/history").get_json()
    assert len(history) == 1
    assert history[0]["request"]["principal"] == "1,000,000.00"
    assert history[0]["request"]["tiers"][1]["max"] == ""
    assert history[0]["result"]["total_days"] == 366


def test_form_error_is_shown(client):
    resp = client.post("/", data=form_payload(end_date="2023-12-31"))
    assert resp.status_code == 200
    assert "End date must be after start date" in resp.get_data(as_text=True)
    assert client.get("/api/history").get_json() == []


def test_api_calculate(client):
    resp = client.post(
        "/api/calculate",
        json={
            "principal": "1000000.00",
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "interest_type": "simple",
            "apply_type": "annually",
            "tiers": [
                {"min": "1.00", "max": "1000000.00", "rate": "2.00"},
                {"min": "1000000.01", "max": None, "rate": "0.50"},
            ],
            "include_daily": True,
        },
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["total_interest"].startswith("20054.79")
    assert data["accrued_interest"] == "0"
    assert len(data["breakdown"]) == 12
    assert len(data["daily"]) == 366


def test_api_uses_default_tiers(client):
    resp = client.post(
        "/api/calculate",
        json={"principal": "2500000", "start_date": "2024-01-01", "end_date": "2024-01-31"},
    )
    assert resp.status_code == 200
    assert len(resp.get_json()["tier_results"]) == 3


@pytest.mark.parametrize(
    "payload",
    [
        {"principal": "-1", "start_date": "2024-01-01", "end_date": "2024-12-31"},
        {"principal": "100", "start_date": "2024-01-01", "end_date": "2024-12-31", "tiers": []},
        {"principal": "100", "start_date": "2024-01-01", "end_date": "2024-12-31", "apply_type": "weekly"},
        {"principal": "1000", "start_date": "2024-01-01", "end_date": "2024-12-31", "tiers": ["1:2:3"]},
        {"principal": "1000", "start_date": "2024-01-01", "end_date": "2024-12-31", "tiers": [5]},
        {"principal": "1000", "start_date": "2024-01-01", "end_date": "2024-12-31", "tiers": 5},
    ],
)
def test_api_rejects_bad_requests(client, payload):
    resp = client.post("/api/calculate", json=payload)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_history_restore_remove_and_clear(client):
    client.post("/", data=form_payload())
    client.post("/", data=form_payload(principal="500000"))
    history = client.get("/api/history").get_json()
    assert [h["request"]["principal"] for h in history] == ["500000", "1,000,000.00"]

    resp = client.post(f"/history/{history[1]['id']}/restore")
    assert resp.status_code == 200
    assert "20,054.79" in resp.get_data(as_text=True)

    resp = client.post(f"/history/{history[0]['id']}/remove")
    assert resp.status_code == 302
    assert len(client.get("/api/history").get_json()) == 1

    client.post("/history/clear")
    assert client.get("/api/history").get_json() == []


def test_presets_save_load_remove(client):
    resp = client.post("/presets", data=form_payload(preset_name="Big deposit"))
    assert resp.status_code == 200
    assert "Big deposit" in resp.get_data(as_text=True)

    presets = web.history_store.list_presets(_token(client))
    assert len(presets) == 1
    preset_id = presets[0]["id"]

    resp = client.post(f"/presets/{preset_id}/load")
    html = resp.get_data(as_text=True)
    assert 'value="1,000,000.00"' in html
    assert 'value="1000000.01"' in html

    client.post(f"/presets/{preset_id}/remove")
    assert web.history_store.list_presets(_token(client)) == []


def _token(client) -> str:
    with client.session_transaction() as session:
        return session["user_token"]


def test_api_accepts_mixed_case_types(client):
    resp = client.post(
        "/api/calculate",
        json={
            "principal": "1000000",
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "interest_type": "Compound",
            "apply_type": "MONTHLY",
        },
    )
    assert resp.status_code == 200, resp.get_json()
    assert Decimal(resp.get_json()["total_interest"]) > 0


def test_huge_principal_renders(client):
    resp = client.post(
        "/",
        data=form_payload(
            principal="100000000000000000000000000", tier_min=["1.00"], tier_max=[""], tier_rate=["0"]
        ),
    )
    assert resp.status_code == 200
    assert "100,000,000,000,000,000,000,000,000.00" in resp.get_data(as_text=True)


def test_api_rejects_non_object_body(client):
    resp = client.post("/api/calculate", json=["1000", "2024-01-01", "2024-12-31"])
    assert resp.status_code == 400
    assert "error" in resp.get_json()
