"""
Cas d'usage 'card': panier brut -> line_items Stripe -> session Checkout.
Pas d'état serveur: Stripe héberge la page de paiement.
"""
import logging
import math
from typing import Any, Dict, List, Optional

import stripe

from storefront.financing.errors import CheckoutError
from storefront.financing.money import to_minor_units
from . import stripe_client

logger = logging.getLogger(__name__)

# Montant unitaire minimum accepté par Stripe en USD (centimes)
STRIPE_MIN_UNIT_AMOUNT = 50
ITEM_NAME_MAX = 120


class CardCheckoutError(CheckoutError):
    """Erreur du rail carte: corps {ok:false, error, code}."""

    def __init__(self, message: str, status_code: int = 500, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    def to_body(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message, "code": self.code}


def _quantity(raw: Any) -> int:
    """Quantité tronquée, au moins 1 (un qty illisible vaut 1)."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(value):
        return 1
    return max(1, int(value))


# module storefront.card.service
def to_line_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data en USD) à partir du panier brut.
    - Nom par défaut "Item N", tronqué à 120 caractères.
    - Ignore les lignes dont le prix unitaire est sous 0,50 $.
    - Lève CardCheckoutError(400, "no_valid_line_items") si aucune ligne ne survit.
    """
    line_items: List[Dict[str, Any]] = []
    for index, it in enumerate(items):
        if not isinstance(it, dict):
            continue
        name = str(it.get("name") or f"Item {index + 1}").strip()[:ITEM_NAME_MAX]
        unit_amount = to_minor_units(it.get("price"))
        if not name or unit_amount < STRIPE_MIN_UNIT_AMOUNT:
            continue
        line_items.append({
            "price_data": {
                "currency": "usd",
                "product_data": {"name": name},
                "unit_amount": unit_amount,
            },
            "quantity": _quantity(it.get("qty", it.get("quantity"))),
        })
    if not line_items:
        raise CardCheckoutError("no_valid_line_items", status_code=400)
    return line_items


def create_card_checkout(body: Dict[str, Any], origin: str) -> Dict[str, Any]:
    """
    Crée la session Stripe Checkout et retourne {ok: true, url}.
    - 400 si items absent/vide ou sans ligne valide
    - 500 si clé Stripe manquante ou erreur Stripe (message + code Stripe)
    """
    items = body.get("items")
    if not isinstance(items, list) or not items:
        raise CardCheckoutError("items array required", status_code=400)

    line_items = to_line_items(items)
    try:
        session = stripe_client.create_session(
            line_items=line_items,
            success_url=f"{origin}/?card=success&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/?card=cancel",
        )
    except stripe.StripeError as e:
        logger.error("card.checkout stripe error code=%s message=%s", e.code, e.user_message or str(e))
        raise CardCheckoutError(e.user_message or str(e) or "server_error", code=e.code) from e
    logger.info("card.checkout session=%s items=%s", session.get("id"), len(line_items))
    return {"ok": True, "url": session.get("url")}
