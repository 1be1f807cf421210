import asyncio
import base64

import httpx
import pytest

from storefront.financing.errors import (
    CredentialError,
    IntegrationContractError,
    InvalidAmountError,
    MissingOrderIdError,
    MissingTokenError,
    ProviderRejection,
    TransportError,
)
from storefront.financing.orchestrator import (
    AuthorizationOrchestrator,
    AuthorizationRequest,
    ChargeState,
    OrchestrationResult,
    parse_amount,
)
from storefront.financing.provider import ChargesV2Adapter, build_auth_header

BODY = {"checkout_token": "tok_123", "order_id": "ORDER-1", "amount_cents": 150000}


def _run(fake_provider, settings, body):
    async def go():
        async with fake_provider.client() as http:
            orchestrator = AuthorizationOrchestrator(ChargesV2Adapter(settings, http))
            return await orchestrator.run(AuthorizationRequest.from_body(body))
    return asyncio.run(go())


def test_authorize_then_capture(fake_provider, provider_settings):
    result = _run(fake_provider, provider_settings, BODY)

    assert result.ok and result.captured
    assert result.charge_id == "CHG-1"
    assert result.history == [
        ChargeState.IDLE, ChargeState.AUTHORIZING, ChargeState.AUTHORIZED,
        ChargeState.CAPTURING, ChargeState.CAPTURED,
    ]
    assert fake_provider.steps == ["authorize", "capture"]

    authorize, capture = fake_provider.calls
    assert authorize["url"] == "https://sandbox.affirm.com/api/v2/charges"
    assert authorize["json"] == {"checkout_token": "tok_123"}
    assert capture["url"] == "https://sandbox.affirm.com/api/v2/charges/CHG-1/capture"
    assert capture["json"] == {"order_id": "ORDER-1", "amount": 150000}
    expected = "Basic " + base64.b64encode(b"pub_test:priv_test").decode()
    assert authorize["headers"]["authorization"] == expected


def test_capture_false_makes_a_single_call(fake_provider, provider_settings):
    result = _run(fake_provider, provider_settings, {"checkout_token": "tok_123", "capture": False})

    assert result.ok
    assert result.state == ChargeState.AUTHORIZED
    assert result.captured is False
    assert fake_provider.steps == ["authorize"]


def test_no_capture_after_authorize_rejection(fake_provider, provider_settings):
    fake_provider.authorize_response = (400, {"code": "auth-declined", "message": "declined"})
    result = _run(fake_provider, provider_settings, BODY)

    assert result.state == ChargeState.AUTHORIZE_FAILED
    assert isinstance(result.error, ProviderRejection)
    assert result.error.provider_status == 400
    assert result.error.provider_body == {"code": "auth-declined", "message": "declined"}
    assert fake_provider.steps == ["authorize"]


def test_missing_charge_id_is_distinct_from_rejection(fake_provider, provider_settings):
    fake_provider.authorize_response = (200, {"status": "authorized"})
    result = _run(fake_provider, provider_settings, BODY)

    assert result.state == ChargeState.MISSING_CHARGE_ID
    assert isinstance(result.error, IntegrationContractError)
    assert result.error.to_body()["raw"] == {"status": "authorized"}
    assert result.charge_id is None
    assert fake_provider.steps == ["authorize"]


def test_capture_failure_keeps_charge_id(fake_provider, provider_settings):
    fake_provider.capture_response = (422, {"code": "capture-limit-exceeded"})
    result = _run(fake_provider, provider_settings, BODY)

    assert result.state == ChargeState.CAPTURE_FAILED
    assert result.authorized and not result.captured
    assert result.error.step == "capture"
    assert result.error.charge_id == "CHG-1"


def test_shipping_fields_forwarded_to_capture(fake_provider, provider_settings):
    body = dict(BODY, shipping_carrier="UPS", shipping_confirmation="1Z999")
    _run(fake_provider, provider_settings, body)
    assert fake_provider.calls[1]["json"] == {
        "order_id": "ORDER-1", "amount": 150000, "shipping_carrier": "UPS", "shipping_confirmation": "1Z999",
    }


def test_authorize_timeout_is_a_phase_failure(fake_provider, provider_settings):
    fake_provider.raise_on["authorize"] = httpx.ReadTimeout
    result = _run(fake_provider, provider_settings, BODY)

    assert result.state == ChargeState.AUTHORIZE_FAILED
    assert result.error.provider_status == 504
    assert fake_provider.steps == ["authorize"]


def test_capture_network_error_raises_transport_error(fake_provider, provider_settings):
    fake_provider.raise_on["capture"] = httpx.ConnectError
    with pytest.raises(TransportError) as exc:
        _run(fake_provider, provider_settings, BODY)
    assert exc.value.step == "capture"
    assert exc.value.charge_id == "CHG-1"


@pytest.mark.parametrize(
    "body,error",
    [
        ({"order_id": "ORDER-1", "amount_cents": 100}, MissingTokenError),
        ({"checkout_token": "   ", "order_id": "ORDER-1", "amount_cents": 100}, MissingTokenError),
        ({"checkout_token": "tok", "amount_cents": 100}, MissingOrderIdError),
        ({"checkout_token": "tok", "order_id": "ORDER-1"}, InvalidAmountError),
        ({"checkout_token": "tok", "order_id": "ORDER-1", "amount_cents": 0}, InvalidAmountError),
        ({"checkout_token": "tok", "order_id": "ORDER-1", "amount_cents": 12.5}, InvalidAmountError),
        ({"checkout_token": "tok", "order_id": "ORDER-1", "amount_cents": "abc"}, InvalidAmountError),
    ],
)
def test_validation_gate_makes_no_remote_call(fake_provider, provider_settings, body, error):
    with pytest.raises(error):
        _run(fake_provider, provider_settings, body)
    assert fake_provider.calls == []


def test_validation_messages():
    assert MissingTokenError().message == "Missing checkout_token"
    assert MissingOrderIdError().message == "Missing order_id (required when capture=true)"
    assert InvalidAmountError().message == "amount_cents required (positive integer) when capture=true"


@pytest.mark.parametrize(
    "raw,expected",
    [(150000, 150000), (150000.0, 150000), ("150000", 150000), (0, None), (-5, None), (True, None), (None, None), (float("inf"), None)],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_illegal_transition_is_rejected():
    result = OrchestrationResult()
    with pytest.raises(RuntimeError):
        result.transition(ChargeState.CAPTURING)


def test_auth_header_requires_both_keys(provider_settings):
    from dataclasses import replace

    with pytest.raises(CredentialError):
        build_auth_header(replace(provider_settings, public_key=""))


@pytest.mark.parametrize("body,expected", [({"id": "CHG-9"}, "CHG-9"), ({"id": " "}, None), ({}, None), ("text", None), (None, None)])
def test_extract_charge_id(body, expected):
    assert ChargesV2Adapter.extract_charge_id(body) == expected
