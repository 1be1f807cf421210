"""
Orchestrateur authorize -> capture (côté serveur uniquement: porte la clé privée).

États: IDLE -> AUTHORIZING -> AUTHORIZED -> CAPTURING -> CAPTURED
Sorties d'échec: AUTHORIZE_FAILED, CAPTURE_FAILED, MISSING_CHARGE_ID.

Chaque appel de run() est une tentative unique:
- aucune relance automatique, aucune déduplication par token
- aucun void automatique après un échec de capture (la charge reste autorisée
  côté fournisseur, l'id est remonté pour traitement manuel)
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .errors import (
    CheckoutError,
    IntegrationContractError,
    InvalidAmountError,
    MissingOrderIdError,
    MissingTokenError,
    ProviderRejection,
    TransportError,
)
from .provider import ChargesV2Adapter, ProviderResponse, safe_dump

logger = logging.getLogger(__name__)

TIMEOUT_STATUS = 504


class ChargeState(str, Enum):
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    AUTHORIZED = "authorized"
    CAPTURING = "capturing"
    CAPTURED = "captured"
    AUTHORIZE_FAILED = "authorize_failed"
    CAPTURE_FAILED = "capture_failed"
    MISSING_CHARGE_ID = "missing_charge_id"


_TRANSITIONS = {
    ChargeState.IDLE: {ChargeState.AUTHORIZING},
    ChargeState.AUTHORIZING: {
        ChargeState.AUTHORIZED,
        ChargeState.AUTHORIZE_FAILED,
        ChargeState.MISSING_CHARGE_ID,
    },
    ChargeState.AUTHORIZED: {ChargeState.CAPTURING},
    ChargeState.CAPTURING: {ChargeState.CAPTURED, ChargeState.CAPTURE_FAILED},
}

SUCCESS_STATES = {ChargeState.AUTHORIZED, ChargeState.CAPTURED}


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_amount(raw: Any) -> Optional[int]:
    """
    Montant en centimes: entier positif fini.
    Accepte 150000, 150000.0 ou "150000"; rejette bool, 0, négatifs, décimaux, NaN/inf.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not math.isfinite(raw) or not raw.is_integer():
            return None
        value = int(raw)
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        return None
    return value if value > 0 else None


@dataclass
class AuthorizationRequest:
    checkout_token: Any = None
    order_id: Any = None
    amount_cents: Any = None
    capture: bool = True
    shipping_carrier: Optional[str] = None
    shipping_confirmation: Optional[str] = None

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "AuthorizationRequest":
        """Lit le corps JSON de POST /authorize (clés snake_case)."""
        capture = body.get("capture", True)
        return cls(
            checkout_token=body.get("checkout_token"),
            order_id=body.get("order_id"),
            amount_cents=body.get("amount_cents"),
            capture=True if capture is None else bool(capture),
            shipping_carrier=_clean_str(body.get("shipping_carrier")) or None,
            shipping_confirmation=_clean_str(body.get("shipping_confirmation")) or None,
        )


@dataclass(frozen=True)
class ValidatedRequest:
    checkout_token: str
    order_id: Optional[str]
    amount_minor: Optional[int]
    capture: bool
    shipping_carrier: Optional[str]
    shipping_confirmation: Optional[str]


def validate_request(req: AuthorizationRequest) -> ValidatedRequest:
    """
    Porte de validation locale et synchrone (aucun appel distant si elle échoue).
    - checkout_token non vide
    - si capture: order_id non vide et amount_cents entier positif
    """
    token = _clean_str(req.checkout_token)
    if not token:
        raise MissingTokenError()
    order_id = _clean_str(req.order_id) or None
    amount = None
    if req.capture:
        if not order_id:
            raise MissingOrderIdError()
        amount = parse_amount(req.amount_cents)
        if amount is None:
            raise InvalidAmountError()
    return ValidatedRequest(
        checkout_token=token,
        order_id=order_id,
        amount_minor=amount,
        capture=req.capture,
        shipping_carrier=req.shipping_carrier,
        shipping_confirmation=req.shipping_confirmation,
    )


@dataclass
class OrchestrationResult:
    state: ChargeState = ChargeState.IDLE
    charge_id: Optional[str] = None
    capture_requested: bool = True
    authorize_body: Any = None
    capture_body: Any = None
    error: Optional[CheckoutError] = None
    history: List[ChargeState] = field(default_factory=lambda: [ChargeState.IDLE])

    @property
    def ok(self) -> bool:
        return self.state in SUCCESS_STATES and self.error is None

    @property
    def authorized(self) -> bool:
        return self.charge_id is not None

    @property
    def captured(self) -> bool:
        return self.state == ChargeState.CAPTURED

    def transition(self, new_state: ChargeState) -> None:
        allowed = _TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise RuntimeError(f"illegal charge transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)


class AuthorizationOrchestrator:
    """Machine à états authorize/capture au-dessus d'un adaptateur fournisseur."""

    def __init__(self, provider: ChargesV2Adapter):
        self.provider = provider

    async def _call(self, step: str, coro, charge_id: Optional[str] = None) -> ProviderResponse:
        """
        Exécute un appel fournisseur.
        - timeout -> réponse non-2xx synthétique (504) pour la phase
        - autre erreur réseau -> TransportError (avec charge_id si déjà connu)
        """
        try:
            return await coro
        except httpx.TimeoutException as e:
            logger.warning("financing.%s timeout charge_id=%s error=%s", step, charge_id, e)
            return ProviderResponse(status_code=TIMEOUT_STATUS, body={"error": "timeout", "message": str(e)})
        except httpx.TransportError as e:
            raise TransportError(step, e, charge_id=charge_id) from e

    async def run(self, req: AuthorizationRequest) -> OrchestrationResult:
        checked = validate_request(req)
        result = OrchestrationResult(capture_requested=checked.capture)

        # 1) AUTHORIZE
        result.transition(ChargeState.AUTHORIZING)
        auth = await self._call("authorize", self.provider.authorize(checked.checkout_token))
        result.authorize_body = auth.body
        logger.info(
            "financing.authorize status=%s order_id=%s resp=%s",
            auth.status_code, checked.order_id, safe_dump(auth.body),
        )
        if not auth.ok:
            result.transition(ChargeState.AUTHORIZE_FAILED)
            result.error = ProviderRejection("authorize", auth.status_code, auth.body)
            return result

        charge_id = self.provider.extract_charge_id(auth.body)
        if not charge_id:
            logger.error(
                "financing.authorize missing charge id status=%s order_id=%s resp=%s",
                auth.status_code, checked.order_id, safe_dump(auth.body),
            )
            result.transition(ChargeState.MISSING_CHARGE_ID)
            result.error = IntegrationContractError("authorize", auth.body)
            return result

        result.charge_id = charge_id
        result.transition(ChargeState.AUTHORIZED)
        if not checked.capture:
            return result

        # 2) CAPTURE
        result.transition(ChargeState.CAPTURING)
        cap = await self._call(
            "capture",
            self.provider.capture(
                charge_id,
                order_id=checked.order_id,
                amount_minor=checked.amount_minor,
                shipping_carrier=checked.shipping_carrier,
                shipping_confirmation=checked.shipping_confirmation,
            ),
            charge_id=charge_id,
        )
        result.capture_body = cap.body
        logger.info(
            "financing.capture status=%s order_id=%s amount_cents=%s charge_id=%s resp=%s",
            cap.status_code, checked.order_id, checked.amount_minor, charge_id, safe_dump(cap.body),
        )
        if not cap.ok:
            # Charge autorisée mais non capturée: état ambigu, à traiter hors bande
            logger.error("financing.capture failed charge_id=%s status=%s (authorized, not captured)", charge_id, cap.status_code)
            result.transition(ChargeState.CAPTURE_FAILED)
            result.error = ProviderRejection("capture", cap.status_code, cap.body, charge_id=charge_id)
            return result

        result.transition(ChargeState.CAPTURED)
        return result

    def summary(self) -> Dict[str, Any]:
        return {"version": self.provider.version, "endpoints": self.provider.endpoints()}
