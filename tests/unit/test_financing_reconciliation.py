import httpx
import pytest

from storefront.financing.errors import (
    CredentialError,
    IntegrationContractError,
    MissingTokenError,
    ProviderRejection,
    TransportError,
)
from storefront.financing.orchestrator import ChargeState, OrchestrationResult
from storefront.financing.reconciliation import (
    CANCELLED,
    CONFIRMED,
    NOT_COMPLETED,
    SERVER_UNCONFIRMED,
    VALIDATION_FAILED,
    classify_for_user,
    envelope_for_error,
    envelope_for_result,
    server_error_envelope,
)


def _result(state, capture_body=None):
    return OrchestrationResult(
        state=state,
        charge_id="CHG-1",
        authorize_body={"id": "CHG-1"},
        capture_body=capture_body,
    )


def test_envelope_for_captured_result():
    status, body = envelope_for_result(_result(ChargeState.CAPTURED, {"id": "CAP-1"}))
    assert status == 200
    assert body == {
        "ok": True,
        "charge_id": "CHG-1",
        "authorized": True,
        "captured": True,
        "authorize": {"id": "CHG-1"},
        "capture": {"id": "CAP-1"},
    }


def test_envelope_for_authorized_only_has_no_capture_key():
    status, body = envelope_for_result(_result(ChargeState.AUTHORIZED))
    assert status == 200
    assert body["captured"] is False
    assert "capture" not in body


def test_envelope_forwards_provider_status():
    status, body = envelope_for_error(ProviderRejection("authorize", 402, {"code": "declined"}))
    assert status == 402
    assert body == {"ok": False, "step": "authorize", "error": {"code": "declined"}}


def test_envelope_maps_unusual_provider_status_to_502():
    status, _ = envelope_for_error(ProviderRejection("capture", 302, None, charge_id="CHG-1"))
    assert status == 502


def test_envelope_for_missing_charge_id():
    status, body = envelope_for_error(IntegrationContractError("authorize", {"status": "ok"}))
    assert status == 500
    assert body == {
        "ok": False,
        "step": "authorize",
        "error": "Authorize succeeded but missing charge id",
        "code": "missing_charge_id",
        "raw": {"status": "ok"},
    }


def test_envelope_for_transport_error_is_server_error():
    status, body = envelope_for_error(TransportError("capture", httpx.ConnectError("refused"), charge_id="CHG-1"))
    assert status == 500
    assert body["error"] == "server_error"
    assert body["name"] == "ConnectError"
    assert body["step"] == "capture"
    assert body["charge_id"] == "CHG-1"


def test_envelope_for_validation_and_credentials():
    assert envelope_for_error(MissingTokenError()) == (
        400, {"ok": False, "step": "validate", "error": "Missing checkout_token", "code": "missing_token"},
    )
    assert envelope_for_error(CredentialError()) == (
        500, {"ok": False, "error": "Missing AFFIRM_PUBLIC_KEY or AFFIRM_PRIVATE_KEY env vars"},
    )


def test_server_error_envelope():
    status, body = server_error_envelope(ValueError("boom"))
    assert status == 500
    assert body == {"ok": False, "error": "server_error", "name": "ValueError", "message": "boom"}


@pytest.mark.parametrize(
    "status,body,notice",
    [
        (200, {"ok": True}, CONFIRMED),
        (400, {"ok": False, "step": "validate"}, VALIDATION_FAILED),
        (402, {"ok": False, "step": "authorize"}, NOT_COMPLETED),
        (504, {"ok": False, "step": "authorize"}, SERVER_UNCONFIRMED),
        (500, {"ok": False, "step": "capture", "charge_id": "CHG-1"}, SERVER_UNCONFIRMED),
        (500, {"ok": False, "step": "authorize", "code": "missing_charge_id"}, SERVER_UNCONFIRMED),
        (500, {"ok": False, "error": "server_error"}, SERVER_UNCONFIRMED),
        (0, None, SERVER_UNCONFIRMED),
    ],
)
def test_classify_for_user(status, body, notice):
    assert classify_for_user(status, body) == notice


def test_only_non_completed_notices_allow_retry():
    assert NOT_COMPLETED.retry and CANCELLED.retry
    assert not VALIDATION_FAILED.retry
    assert not SERVER_UNCONFIRMED.retry
