"""
Réconciliation: état terminal de l'orchestrateur -> enveloppe client uniforme
{ok, step?, charge_id?, error?} + statut HTTP, et classement du message à
afficher à l'acheteur.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import (
    CheckoutError,
    IntegrationContractError,
    ProviderRejection,
    TransportError,
)
from .orchestrator import ChargeState, OrchestrationResult

Envelope = Tuple[int, Dict[str, Any]]


# module storefront.financing.reconciliation
def envelope_for_result(result: OrchestrationResult) -> Envelope:
    if result.error is not None:
        return envelope_for_error(result.error)
    body: Dict[str, Any] = {
        "ok": True,
        "charge_id": result.charge_id,
        "authorized": True,
        "captured": result.captured,
        "authorize": result.authorize_body,
    }
    if result.state == ChargeState.CAPTURED:
        body["capture"] = result.capture_body
    return 200, body


def server_error_envelope(exc: BaseException, charge_id: Optional[str] = None) -> Envelope:
    """Toute exception non prévue devient un server_error diagnostiquable (jamais d'attente infinie côté UI)."""
    body: Dict[str, Any] = {
        "ok": False,
        "error": "server_error",
        "name": exc.__class__.__name__,
        "message": str(exc) or None,
    }
    if charge_id:
        body["charge_id"] = charge_id
    return 500, body


def envelope_for_error(exc: BaseException) -> Envelope:
    if isinstance(exc, TransportError):
        body = server_error_envelope(exc.cause, charge_id=exc.charge_id)[1]
        body["step"] = exc.step
        return 500, body
    if isinstance(exc, ProviderRejection):
        status = exc.provider_status if 400 <= exc.provider_status <= 599 else 502
        return status, exc.to_body()
    if isinstance(exc, CheckoutError):
        return exc.status_code, exc.to_body()
    return server_error_envelope(exc)


class NoticeKind(str, Enum):
    PAYMENT_NOT_COMPLETED = "payment_not_completed"
    VALIDATION_FAILED = "validation_failed"
    SERVER_UNCONFIRMED = "server_unconfirmed"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class UserNotice:
    kind: NoticeKind
    title: str
    body: str
    retry: bool


CONFIRMED = UserNotice(
    NoticeKind.CONFIRMED,
    "Request sent",
    "Your financing request was confirmed.",
    retry=False,
)
NOT_COMPLETED = UserNotice(
    NoticeKind.PAYMENT_NOT_COMPLETED,
    "Financing not completed",
    "Your request could not be completed. No charge was made; you can try again.",
    retry=True,
)
CANCELLED = UserNotice(
    NoticeKind.PAYMENT_NOT_COMPLETED,
    "Process cancelled",
    "No charge was made. Do you want to try again?",
    retry=True,
)
VALIDATION_FAILED = UserNotice(
    NoticeKind.VALIDATION_FAILED,
    "Invalid details",
    "Please check the product price and total. Contact us if the problem persists.",
    retry=False,
)
SERVER_UNCONFIRMED = UserNotice(
    NoticeKind.SERVER_UNCONFIRMED,
    "We could not confirm your request",
    "Our server could not confirm the payment. Please wait a few minutes before trying again.",
    retry=False,
)


def classify_for_user(status: int, body: Optional[Dict[str, Any]]) -> UserNotice:
    """
    Choisit le message acheteur à partir de la réponse de /authorize.
    - 200 ok -> confirmé
    - 400 / step=validate -> validation (ne pas relancer tel quel)
    - rejet à l'autorisation -> non complété (relance possible avec un nouveau token)
    - capture échouée, 5xx, server_error -> serveur non confirmé (attendre, risque de double débit)
    """
    body = body or {}
    if status == 200 and body.get("ok"):
        return CONFIRMED
    if status == 400 or body.get("step") == "validate":
        return VALIDATION_FAILED
    if body.get("step") == "capture" or body.get("charge_id"):
        return SERVER_UNCONFIRMED
    if body.get("step") == "authorize" and body.get("code") != IntegrationContractError.code and status < 500:
        return NOT_COMPLETED
    return SERVER_UNCONFIRMED
