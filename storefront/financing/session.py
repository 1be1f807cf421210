"""
Session de checkout côté client.

- SdkLoader: charge le script SDK du fournisseur une seule fois (single-flight:
  les appels concurrents attendent le même chargement en cours).
- CheckoutSession: ouvre la modale du fournisseur avec le payload et expose
  exactement UN événement terminal (succès, échec, erreur de validation, annulation).
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import httpx

from .errors import SdkLoadError
from .payload import ProviderCheckoutPayload, new_order_id

logger = logging.getLogger(__name__)


class SdkLoader:
    """Chargement paresseux et mis en cache du script SDK (une requête réseau au plus par succès)."""

    def __init__(self, script_url: str, client: httpx.AsyncClient, public_key: str = ""):
        self.script_url = script_url
        self.client = client
        self.public_key = public_key
        self._task: Optional[asyncio.Future] = None
        self._script: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._script is not None

    async def _fetch(self) -> str:
        try:
            response = await self.client.get(self.script_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SdkLoadError(f"Could not load provider SDK from {self.script_url}: {e}") from e
        if not response.text.strip():
            raise SdkLoadError(f"Provider SDK at {self.script_url} is empty")
        logger.info("financing.sdk loaded url=%s bytes=%s", self.script_url, len(response.content))
        return response.text

    async def load(self) -> str:
        """
        Charge le SDK (no-op si déjà chargé).
        - Un échec lève SdkLoadError et réinitialise le loader (un nouvel essai refera la requête).
        """
        if self._script is not None:
            return self._script
        if self._task is None:
            self._task = asyncio.ensure_future(self._fetch())
        task = self._task
        try:
            script = await asyncio.shield(task)
        except SdkLoadError:
            if self._task is task:
                self._task = None
            raise
        self._script = script
        return script


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    VALIDATION_ERROR = "validation_error"
    CANCEL = "cancel"


@dataclass(frozen=True)
class CheckoutOutcome:
    kind: OutcomeKind
    token: Optional[str] = None
    reason: Any = None
    fields: Tuple[str, ...] = ()

    @classmethod
    def success(cls, token: str) -> "CheckoutOutcome":
        return cls(OutcomeKind.SUCCESS, token=token)

    @classmethod
    def fail(cls, reason: Any = None) -> "CheckoutOutcome":
        return cls(OutcomeKind.FAIL, reason=reason)

    @classmethod
    def validation_error(cls, fields=()) -> "CheckoutOutcome":
        return cls(OutcomeKind.VALIDATION_ERROR, fields=tuple(str(f) for f in (fields or ())))

    @classmethod
    def cancel(cls) -> "CheckoutOutcome":
        return cls(OutcomeKind.CANCEL)


@dataclass(frozen=True)
class WidgetCallbacks:
    on_success: Callable[[str], None]
    on_fail: Callable[[Any], None]
    on_validation_error: Callable[[Any], None]
    on_close: Callable[[], None]


class CheckoutWidget(Protocol):
    """Modale du fournisseur: reçoit le payload et rappelle l'un des callbacks."""

    def open(self, payload: Dict[str, Any], callbacks: WidgetCallbacks) -> None:
        ...


def _checkout_token(result: Any) -> str:
    # Le SDK rappelle onSuccess avec {"checkout_token": "..."} ou directement le token
    if isinstance(result, dict):
        result = result.get("checkout_token")
    return result.strip() if isinstance(result, str) else ""


class CheckoutSession:
    """
    Tentative de paiement éphémère, détenue par le client.
    - checkout_token n'est renseigné que sur succès
    - aucune ressource serveur, aucun teardown hormis l'état "busy" de l'UI
    """

    def __init__(self, payload: ProviderCheckoutPayload):
        self.payload = payload
        self.checkout_token: Optional[str] = None
        self._future: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def order_id(self) -> str:
        return self.payload.order_id

    @property
    def total_minor(self) -> int:
        return self.payload.total

    @property
    def outcome(self) -> Optional[CheckoutOutcome]:
        if self._future is None or not self._future.done():
            return None
        return self._future.result()

    def _resolve(self, outcome: CheckoutOutcome) -> None:
        if self._future is None or self._future.done():
            logger.debug("financing.session ignored late event kind=%s order_id=%s", outcome.kind.value, self.order_id)
            return
        if outcome.kind == OutcomeKind.SUCCESS:
            self.checkout_token = outcome.token
        self._future.set_result(outcome)

    def _emit(self, outcome: CheckoutOutcome) -> None:
        # Les callbacks peuvent venir d'un autre thread (driver de la modale)
        self._loop.call_soon_threadsafe(self._resolve, outcome)

    def _on_success(self, result: Any) -> None:
        token = _checkout_token(result)
        self._emit(CheckoutOutcome.success(token) if token else CheckoutOutcome.fail("missing checkout_token"))

    def open(self, widget: CheckoutWidget) -> "asyncio.Future[CheckoutOutcome]":
        """Ouvre la modale (fire-and-forget) et retourne le futur de l'unique événement terminal."""
        if self._future is not None:
            raise RuntimeError("checkout session already opened; use reopen()")
        self._loop = asyncio.get_running_loop()
        self._future = self._loop.create_future()
        callbacks = WidgetCallbacks(
            on_success=self._on_success,
            on_fail=lambda reason=None: self._emit(CheckoutOutcome.fail(reason)),
            on_validation_error=lambda fields=(): self._emit(CheckoutOutcome.validation_error(fields)),
            on_close=lambda: self._emit(CheckoutOutcome.cancel()),
        )
        try:
            widget.open(self.payload.to_wire(), callbacks)
        except Exception as e:
            logger.exception("financing.session widget open failed order_id=%s", self.order_id)
            self._emit(CheckoutOutcome.fail(str(e)))
        return self._future

    def reopen(self) -> "CheckoutSession":
        """
        Nouvelle session équivalente après un événement terminal.
        - payload conservé (pas de reconstruction), order_id neuf
        - jamais de reprise du checkout_token précédent
        """
        if self.outcome is None:
            raise RuntimeError("checkout session still open")
        return CheckoutSession(self.payload.model_copy(update={"order_id": new_order_id()}))
