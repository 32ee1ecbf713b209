from fastapi.testclient import TestClient

from fixtures import keepa_record

from signalscout.main import app

client = TestClient(app)


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_analyze_batch():
    body = {"products": [keepa_record("B0API"), {"title": "broken"}], "range_months": 36}
    r = client.post("/analyze", json=body)
    assert r.status_code == 200
    data = r.json()

    good, bad = data["products"]
    assert good["status"] == "complete"
    assert good["signals"]["meta"]["range_months"] == 36
    assert isinstance(good["series"]["rank"][0]["timestamp"], str)
    assert bad["status"] == "error"
    assert bad["error"]

    market = data["market"]
    assert market["product_count"] == 1
    assert market["price_war_risk"] in {"Low", "Medium", "High", "Unknown"}
    assert "story" in market["insights"]
    assert market["seasonality_score"] == market["seasonality"]["score"]


def test_analyze_rejects_bad_bodies():
    assert client.post("/analyze", json={}).status_code == 422
    assert client.post("/analyze", json={"products": "nope"}).status_code == 422
    assert client.post("/analyze", json={"products": [], "range_months": "abc"}).status_code == 422
    assert client.post("/analyze", json={"products": [], "range_months": 0}).status_code == 422


def test_analyze_empty_batch():
    r = client.post("/analyze", json={"products": []})
    assert r.status_code == 200
    assert r.json()["market"]["stockout_pressure"] == "Unknown"
