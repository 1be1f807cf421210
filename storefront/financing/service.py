"""
Cas d'usage 'financing': orchestre cart, payload, provider, orchestrator, reconciliation.
Les vues HTTP n'appellent que ce module.
"""
import logging
import platform
from typing import Any, Dict, Mapping

import httpx

from storefront import config
from storefront.config import ProviderSettings
from .cart import build_snapshot
from .errors import CheckoutError, CredentialError
from .orchestrator import AuthorizationOrchestrator, AuthorizationRequest
from .payload import build_checkout_payload
from .provider import ChargesV2Adapter
from .reconciliation import Envelope, envelope_for_error, envelope_for_result, server_error_envelope

logger = logging.getLogger(__name__)


def diag_info(settings: ProviderSettings) -> Dict[str, Any]:
    """Écho de configuration non sensible (aucun appel fournisseur, aucune clé renvoyée)."""
    adapter = ChargesV2Adapter(settings, client=None)
    return {
        "base": settings.base_url,
        "api_version": adapter.version,
        "endpoints": adapter.endpoints(),
        "env": {
            "AFFIRM_ENV": settings.env_label,
            "AFFIRM_COUNTRY_CODE": settings.country_code,
            "HAS_AFFIRM_PUBLIC_KEY": bool(settings.public_key),
            "HAS_AFFIRM_PRIVATE_KEY": bool(settings.private_key),
        },
        "runtime": {
            "python": platform.python_version(),
            "httpx": httpx.__version__,
        },
    }


async def ping_provider(settings: ProviderSettings, client: httpx.AsyncClient) -> Envelope:
    """Un seul GET authentifié pour valider les clés, sans consommer de checkout token."""
    if not settings.has_credentials:
        raise CredentialError()
    adapter = ChargesV2Adapter(settings, client)
    try:
        resp = await adapter.ping()
    except httpx.TimeoutException as e:
        logger.warning("financing.ping timeout base=%s error=%s", settings.base_url, e)
        return 504, {"ok": False, "step": "ping", "error": "timeout"}
    logger.info("financing.ping status=%s base=%s", resp.status_code, settings.base_url)
    body = {"ok": resp.ok, "base": settings.base_url, "env": settings.env_label, "provider_status": resp.status_code}
    if resp.ok:
        return 200, body
    body.update({"step": "ping", "error": resp.body})
    return resp.status_code, body


async def authorize_checkout(body: Mapping[str, Any], settings: ProviderSettings, client: httpx.AsyncClient) -> Envelope:
    """
    Point d'entrée de POST /authorize.
    Ordre: diag -> ping -> clés présentes -> validation -> authorize -> capture.
    Toute exception non prévue est convertie en server_error (jamais propagée).
    """
    try:
        if body.get("diag") is True:
            return 200, {"ok": True, "diag": diag_info(settings)}
        if body.get("ping") is True:
            return await ping_provider(settings, client)
        if not settings.has_credentials:
            raise CredentialError()

        orchestrator = AuthorizationOrchestrator(ChargesV2Adapter(settings, client))
        result = await orchestrator.run(AuthorizationRequest.from_body(body))
        return envelope_for_result(result)
    except CheckoutError as e:
        if e.status_code >= 500:
            logger.error("financing.authorize failed error=%s", e.message)
        return envelope_for_error(e)
    except Exception as e:
        logger.exception("financing.authorize server_error")
        return server_error_envelope(e)


def checkout_payload(body: Mapping[str, Any], merchant_origin: str) -> Dict[str, Any]:
    """
    Construit le payload checkout fournisseur depuis le panier brut du front.
    Lève CheckoutValidationError (panier vide, sous le minimum, origine invalide).
    """
    items = body.get("items")
    snapshot = build_snapshot(
        items if isinstance(items, list) else [],
        shipping=body.get("shipping", 0),
        tax=body.get("tax", 0),
    )
    payload = build_checkout_payload(snapshot, body.get("customer"), config.MERCHANT_ORIGIN or merchant_origin)
    logger.info(
        "financing.payload order_id=%s items=%s total=%s",
        payload.order_id, len(payload.items), payload.total,
    )
    return payload.to_wire()
