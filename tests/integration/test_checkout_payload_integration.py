from storefront import config

CART = {
    "items": [
        {"id": "BIKE-1", "name": "E-Bike", "price": 1499.99, "qty": 1, "url": "/products/e-bike"},
        {"id": "HELMET", "title": "Helmet", "price": 59.95, "quantity": 2},
    ],
    "shipping": 25,
    "tax": 10.5,
}


def test_checkout_payload_success(client, merchant_origin):
    res = client.post("/checkout/payload", json=CART)

    assert res.status_code == 200
    assert res.headers["cache-control"] == "no-store"
    payload = res.json()["payload"]
    assert payload["total"] == 149999 + 2 * 5995 + 2500 + 1050
    assert payload["shipping_amount"] == 2500
    assert payload["tax_amount"] == 1050
    assert payload["merchant"]["user_confirmation_url"] == "https://shop.example.com/affirm/confirm"
    assert payload["items"][0]["item_url"] == "https://shop.example.com/products/e-bike"
    assert payload["order_id"].startswith("ORDER-")


def test_checkout_payload_uses_request_origin_without_config(client, monkeypatch):
    monkeypatch.setattr(config, "MERCHANT_ORIGIN", "", raising=True)
    res = client.post("/checkout/payload", json=CART)

    assert res.status_code == 200
    assert res.json()["payload"]["merchant"]["user_cancel_url"] == "http://testserver/affirm/cancel"


def test_checkout_payload_empty_cart(client, merchant_origin):
    res = client.post("/checkout/payload", json={"items": []})

    assert res.status_code == 400
    assert res.json()["code"] == "empty_cart"
    assert res.json()["step"] == "validate"


def test_checkout_payload_below_minimum(client, merchant_origin):
    res = client.post("/checkout/payload", json={"items": [{"id": "A", "name": "Bell", "price": 20, "qty": 1}]})

    assert res.status_code == 400
    assert res.json()["code"] == "below_minimum"
