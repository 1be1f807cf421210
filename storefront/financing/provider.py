"""
Adaptateur fournisseur de financement (API Charges v2).
Centralise les URLs, l'authentification Basic et la lecture des réponses.
Une seule implémentation: le contrat documenté actuel (v2 "charges").
"""
import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from storefront.config import ProviderSettings
from .errors import CredentialError

logger = logging.getLogger(__name__)

CHARGES_PATH = "/api/v2/charges"
LOG_BODY_LIMIT = 8000


# module storefront.financing.provider
def safe_dump(obj: Any, limit: int = LOG_BODY_LIMIT) -> str:
    """Sérialisation JSON bornée pour les logs (jamais d'exception)."""
    try:
        return json.dumps(obj, indent=2, default=str)[:limit]
    except Exception:
        return "[unserializable]"


def build_auth_header(settings: ProviderSettings) -> str:
    """
    En-tête Basic base64(public:private), recalculé à chaque appel
    (pas de cache: une rotation de clé est prise en compte immédiatement).
    """
    if not settings.has_credentials:
        raise CredentialError()
    raw = f"{settings.public_key}:{settings.private_key}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def read_json(response: httpx.Response) -> Any:
    """
    Corps JSON tolérant:
    - corps vide -> None
    - JSON invalide -> {"raw": <texte>}
    """
    text = response.text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


@dataclass(frozen=True)
class ProviderResponse:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ChargesV2Adapter:
    """
    Appels authentifiés vers le fournisseur.
    - authorize: POST /api/v2/charges {checkout_token}
    - capture: POST /api/v2/charges/{id}/capture {order_id, amount, shipping_*}
    - ping: GET /api/v2/charges?limit=1 (valide les clés sans consommer de token)
    """

    version = "v2"

    def __init__(self, settings: ProviderSettings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    @property
    def charges_url(self) -> str:
        return f"{self.settings.base_url}{CHARGES_PATH}"

    def capture_url(self, charge_id: str) -> str:
        return f"{self.charges_url}/{quote(charge_id, safe='')}/capture"

    def endpoints(self) -> Dict[str, str]:
        return {
            "authorize": self.charges_url,
            "capture": f"{self.charges_url}/{{id}}/capture",
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": build_auth_header(self.settings),
        }

    async def _request(self, method: str, url: str, **kwargs) -> ProviderResponse:
        response = await self.client.request(
            method,
            url,
            headers=self._headers(),
            timeout=self.settings.timeout_seconds,
            **kwargs,
        )
        return ProviderResponse(status_code=response.status_code, body=read_json(response))

    async def authorize(self, checkout_token: str) -> ProviderResponse:
        return await self._request("POST", self.charges_url, json={"checkout_token": checkout_token})

    async def capture(
        self,
        charge_id: str,
        *,
        order_id: str,
        amount_minor: int,
        shipping_carrier: Optional[str] = None,
        shipping_confirmation: Optional[str] = None,
    ) -> ProviderResponse:
        payload: Dict[str, Any] = {"order_id": order_id, "amount": amount_minor}
        if shipping_carrier:
            payload["shipping_carrier"] = shipping_carrier
        if shipping_confirmation:
            payload["shipping_confirmation"] = shipping_confirmation
        return await self._request("POST", self.capture_url(charge_id), json=payload)

    async def ping(self) -> ProviderResponse:
        return await self._request("GET", self.charges_url, params={"limit": 1})

    @staticmethod
    def extract_charge_id(body: Any) -> Optional[str]:
        """L'id de charge v2 est porté par le champ `id`."""
        if not isinstance(body, dict):
            return None
        charge_id = body.get("id")
        if charge_id is None or not str(charge_id).strip():
            return None
        return str(charge_id).strip()
