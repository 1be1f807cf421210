from storefront import config
from storefront.card import stripe_client


def test_card_checkout_returns_url(client, monkeypatch):
    sessions = []

    def _fake_create_session(**kwargs):
        sessions.append(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}

    monkeypatch.setattr(stripe_client, "create_session", _fake_create_session, raising=True)
    res = client.post(
        "/card-checkout",
        json={"items": [{"name": "E-Bike", "price": 1500, "qty": 1}]},
        headers={"X-Forwarded-Host": "shop.example.com", "X-Forwarded-Proto": "https"},
    )

    assert res.status_code == 200
    assert res.json() == {"ok": True, "url": "https://checkout.stripe.com/c/pay/cs_test_1"}
    assert sessions[0]["cancel_url"] == "https://shop.example.com/?card=cancel"
    assert sessions[0]["line_items"][0]["price_data"]["unit_amount"] == 150000


def test_card_checkout_requires_items(client):
    res = client.post("/card-checkout", json={})
    assert res.status_code == 400
    assert res.json()["error"] == "items array required"


def test_card_checkout_without_valid_lines(client):
    res = client.post("/card-checkout", json={"items": [{"name": "Sticker", "price": 0.1, "qty": 1}]})
    assert res.status_code == 400
    assert res.json()["error"] == "no_valid_line_items"


def test_card_checkout_without_stripe_key(client, monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "", raising=True)
    res = client.post("/card-checkout", json={"items": [{"name": "E-Bike", "price": 1500, "qty": 1}]})
    assert res.status_code == 500
    assert res.json() == {"ok": False, "error": "Missing STRIPE_SECRET_KEY env var", "code": None}
