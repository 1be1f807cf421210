import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from storefront import config
from storefront.utils.rate_limit import optional_rate_limit
from storefront.card import service as card_service
from storefront.card.service import CardCheckoutError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Card API"])


def request_origin(request: Request) -> str:
    """Origine publique: en-têtes X-Forwarded-* du proxy, sinon MERCHANT_ORIGIN, sinon l'URL de base."""
    host = request.headers.get("x-forwarded-host")
    if host:
        proto = request.headers.get("x-forwarded-proto") or "https"
        return f"{proto}://{host}"
    return config.MERCHANT_ORIGIN or str(request.base_url).rstrip("/")


# module storefront.card.views
@router.post("/card-checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def card_checkout(request: Request):
    """
    Crée une session Stripe Checkout pour le panier (paiement carte, redirection).
    - Entrée JSON: { "items": [ { "name", "price", "qty" }, ... ] }
    - Réponses: 200 {ok, url}, 400 {ok:false, error}, 500 {ok:false, error, code}
    """
    try:
        body = await request.json()
        result = card_service.create_card_checkout(body if isinstance(body, dict) else {}, request_origin(request))
        return JSONResponse(result, headers={"Cache-Control": "no-store"})
    except CardCheckoutError as e:
        return JSONResponse(e.to_body(), status_code=e.status_code, headers={"Cache-Control": "no-store"})
    except Exception as e:
        logger.exception("Erreur card_checkout")
        return JSONResponse({"ok": False, "error": str(e) or "server_error", "code": None}, status_code=500)
