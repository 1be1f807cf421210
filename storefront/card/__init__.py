"""
Module 'card' (feature-first): rail de paiement carte via Stripe Checkout.
"""

from .stripe_client import require_stripe, create_session
from .service import CardCheckoutError, to_line_items, create_card_checkout

__all__ = [
    # stripe
    "require_stripe",
    "create_session",
    # services
    "CardCheckoutError",
    "to_line_items",
    "create_card_checkout",
]
