"""
Adaptateur Stripe: centralise les appels et la configuration Stripe (rail carte).
"""
import stripe
from typing import Any, Dict, List

from storefront import config

# Moyens de paiement proposés sur la page Stripe Checkout
CARD_PAYMENT_METHODS = ["card", "afterpay_clearpay", "klarna", "zip"]


# module storefront.card.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key / api_version depuis STRIPE_SECRET_KEY / STRIPE_API_VERSION.
    - Lève CardCheckoutError (500) si la clé secrète est absente.
    """
    from .service import CardCheckoutError

    if not config.STRIPE_SECRET_KEY:
        raise CardCheckoutError("Missing STRIPE_SECRET_KEY env var")
    stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.api_version = config.STRIPE_API_VERSION
    return stripe


def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    session = stripe.checkout.Session.create(
        line_items=line_items,
        mode=mode,
        success_url=success_url,
        cancel_url=cancel_url,
        payment_method_types=CARD_PAYMENT_METHODS,
    )
    # stripe retourne un objet; on le traite comme dict-compatible
    return dict(session)
