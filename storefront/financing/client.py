"""
Client du parcours de financement: SDK -> modale -> POST /authorize -> message acheteur.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .errors import SdkLoadError
from .payload import ProviderCheckoutPayload
from .reconciliation import CANCELLED, NOT_COMPLETED, VALIDATION_FAILED, UserNotice, classify_for_user
from .session import CheckoutOutcome, CheckoutSession, CheckoutWidget, OutcomeKind, SdkLoader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutAttempt:
    session: CheckoutSession
    outcome: CheckoutOutcome
    notice: UserNotice
    status_code: Optional[int] = None
    response: Optional[Dict[str, Any]] = None


class CheckoutClient:
    """
    Pilote une tentative de paiement de bout en bout.
    - enabled: faux tant que le SDK n'est pas chargé et pendant une tentative
    - retry(): rouvre la dernière session (payload conservé, token neuf)
    """

    def __init__(
        self,
        loader: SdkLoader,
        widget: CheckoutWidget,
        http: httpx.AsyncClient,
        authorize_url: str,
        capture: bool = True,
    ):
        self.loader = loader
        self.widget = widget
        self.http = http
        self.authorize_url = authorize_url
        self.capture = capture
        self.busy = False
        self.last_attempt: Optional[CheckoutAttempt] = None

    @property
    def enabled(self) -> bool:
        return self.loader.ready and not self.busy

    async def prepare(self) -> bool:
        """Charge le SDK; retourne False (bouton désactivé) si le chargement échoue."""
        try:
            await self.loader.load()
            return True
        except SdkLoadError:
            logger.warning("financing.client sdk unavailable url=%s", self.loader.script_url)
            return False

    async def start(self, payload: ProviderCheckoutPayload) -> CheckoutAttempt:
        return await self._run(CheckoutSession(payload))

    async def retry(self) -> CheckoutAttempt:
        last = self.last_attempt
        if last is None or not last.notice.retry:
            raise RuntimeError("no retryable checkout attempt")
        return await self._run(last.session.reopen())

    async def _run(self, session: CheckoutSession) -> CheckoutAttempt:
        if not self.loader.ready:
            raise SdkLoadError("Provider SDK not loaded")
        if self.busy:
            raise RuntimeError("a checkout attempt is already in progress")
        self.busy = True
        try:
            outcome = await session.open(self.widget)
            status, body = None, None
            if outcome.kind == OutcomeKind.SUCCESS:
                status, body = await self._confirm(session)
                notice = classify_for_user(status, body)
            elif outcome.kind == OutcomeKind.VALIDATION_ERROR:
                logger.warning("financing.client validation error order_id=%s fields=%s", session.order_id, outcome.fields)
                notice = VALIDATION_FAILED
            elif outcome.kind == OutcomeKind.CANCEL:
                notice = CANCELLED
            else:
                logger.warning("financing.client provider fail order_id=%s reason=%s", session.order_id, outcome.reason)
                notice = NOT_COMPLETED
        finally:
            self.busy = False
        attempt = CheckoutAttempt(session, outcome, notice, status, body)
        self.last_attempt = attempt
        return attempt

    async def _confirm(self, session: CheckoutSession):
        """POST du token vers le serveur; une erreur réseau devient un statut 0 (non confirmé)."""
        payload = {
            "checkout_token": session.checkout_token,
            "order_id": session.order_id,
            "amount_cents": session.total_minor,
            "capture": self.capture,
        }
        try:
            response = await self.http.post(self.authorize_url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("financing.client authorize call failed order_id=%s error=%s", session.order_id, e)
            return 0, {"ok": False, "error": "network_error", "message": str(e)}
        try:
            body = response.json()
        except ValueError:
            body = {}
        logger.info("financing.client authorize status=%s order_id=%s", response.status_code, session.order_id)
        return response.status_code, body if isinstance(body, dict) else {}
