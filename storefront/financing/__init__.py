"""
Module 'financing' (feature-first): point d'entrée public.
Réunit panier, payload fournisseur, adaptateur Charges v2, orchestrateur
authorize/capture, réconciliation et session client.
"""

from .money import to_minor_units, format_minor
from .cart import CartLineItem, CartSnapshot, build_snapshot, merge_lines, normalize_item
from .payload import ProviderCheckoutPayload, build_checkout_payload, new_order_id
from .provider import ChargesV2Adapter, ProviderResponse, build_auth_header, read_json
from .orchestrator import (
    AuthorizationOrchestrator,
    AuthorizationRequest,
    ChargeState,
    OrchestrationResult,
    validate_request,
)
from .reconciliation import classify_for_user, envelope_for_error, envelope_for_result
from .session import CheckoutOutcome, CheckoutSession, SdkLoader, WidgetCallbacks
from .client import CheckoutClient
from .service import authorize_checkout, checkout_payload, diag_info, ping_provider

__all__ = [
    # money
    "to_minor_units",
    "format_minor",
    # cart
    "CartLineItem",
    "CartSnapshot",
    "build_snapshot",
    "merge_lines",
    "normalize_item",
    # payload
    "ProviderCheckoutPayload",
    "build_checkout_payload",
    "new_order_id",
    # provider
    "ChargesV2Adapter",
    "ProviderResponse",
    "build_auth_header",
    "read_json",
    # orchestrator
    "AuthorizationOrchestrator",
    "AuthorizationRequest",
    "ChargeState",
    "OrchestrationResult",
    "validate_request",
    # reconciliation
    "classify_for_user",
    "envelope_for_error",
    "envelope_for_result",
    # session / client
    "CheckoutOutcome",
    "CheckoutSession",
    "SdkLoader",
    "WidgetCallbacks",
    "CheckoutClient",
    # services
    "authorize_checkout",
    "checkout_payload",
    "diag_info",
    "ping_provider",
]
