import logging
from typing import Any, AsyncIterator, Dict

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from storefront.config import ProviderSettings
from storefront.utils.rate_limit import optional_rate_limit
from storefront.financing import service as financing_service
from storefront.financing.errors import CheckoutValidationError
from storefront.financing.reconciliation import server_error_envelope

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Financing API"])

NO_STORE = {"Cache-Control": "no-store"}


def get_provider_settings(request: Request) -> ProviderSettings:
    """Configuration fournisseur figée au démarrage (app.state), surchargeable en tests."""
    return request.app.state.provider_settings


async def get_provider_http_client(
    settings: ProviderSettings = Depends(get_provider_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.timeout_seconds) as client:
        yield client


async def _read_body(request: Request) -> Dict[str, Any]:
    """Corps JSON; un corps non-objet est traité comme {} (la validation tranche ensuite)."""
    body = await request.json()
    return body if isinstance(body, dict) else {}


# module storefront.financing.views
@router.post(
    "/authorize",
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
@router.post(
    "/api/affirm-authorize",
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
    include_in_schema=False,
)
async def authorize(
    request: Request,
    settings: ProviderSettings = Depends(get_provider_settings),
    client: httpx.AsyncClient = Depends(get_provider_http_client),
):
    """
    Autorise (et capture par défaut) un checkout financé.
    - Entrée JSON: { "checkout_token", "order_id", "amount_cents", "capture"?: bool }
    - Modes: { "diag": true } (écho de config) et { "ping": true } (test des clés)
    - Réponses: 200 {ok, charge_id, authorized, captured, authorize, capture?}
      400 validation, statut fournisseur sur rejet, 500 server_error / missing_charge_id
    """
    try:
        body = await _read_body(request)
    except Exception as e:
        logger.warning("financing.authorize unreadable body error=%s", e)
        status, payload = server_error_envelope(e)
        return JSONResponse(payload, status_code=status, headers=NO_STORE)

    status, payload = await financing_service.authorize_checkout(body, settings, client)
    return JSONResponse(payload, status_code=status, headers=NO_STORE)


@router.post(
    "/checkout/payload",
    dependencies=[Depends(optional_rate_limit(times=30, seconds=60))],
)
async def checkout_payload(request: Request):
    """
    Construit le payload checkout fournisseur depuis le panier.
    - Entrée JSON: { "items": [...], "shipping"?, "tax"?, "customer"? }
    - 400 si panier vide, sous le minimum finançable ou origine invalide
    """
    try:
        body = await _read_body(request)
    except Exception:
        body = {}
    origin = str(request.base_url).rstrip("/")
    try:
        payload = financing_service.checkout_payload(body, origin)
    except CheckoutValidationError as e:
        return JSONResponse(e.to_body(), status_code=e.status_code, headers=NO_STORE)
    return JSONResponse({"ok": True, "payload": payload}, headers=NO_STORE)
