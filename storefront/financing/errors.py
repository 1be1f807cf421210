"""
Taxonomie des erreurs du checkout financé.

- CheckoutValidationError: entrée invalide, rejetée avant tout appel fournisseur (400).
- CredentialError: configuration serveur incomplète (500).
- ProviderRejection: statut non-2xx du fournisseur (authorize ou capture).
- IntegrationContractError: 2xx mais réponse hors contrat (ex: id de charge absent).
- TransportError: réseau/connexion, ramené à server_error à la frontière.
- SdkLoadError: échec de chargement du script SDK côté client.
"""
from typing import Any, Dict, Optional


class CheckoutError(Exception):
    status_code = 500
    step: Optional[str] = None
    code: Optional[str] = None

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False}
        if self.step:
            body["step"] = self.step
        body["error"] = self.message
        if self.code:
            body["code"] = self.code
        return body


# --- Validation (synchrone, aucun appel distant) ---
class CheckoutValidationError(CheckoutError):
    status_code = 400
    step = "validate"


class MissingTokenError(CheckoutValidationError):
    code = "missing_token"

    def __init__(self):
        super().__init__("Missing checkout_token")


class MissingOrderIdError(CheckoutValidationError):
    code = "missing_order_id"

    def __init__(self):
        super().__init__("Missing order_id (required when capture=true)")


class InvalidAmountError(CheckoutValidationError):
    code = "invalid_amount"

    def __init__(self):
        super().__init__("amount_cents required (positive integer) when capture=true")


class EmptyCartError(CheckoutValidationError):
    code = "empty_cart"

    def __init__(self):
        super().__init__("Cart has no valid items")


class BelowMinimumError(CheckoutValidationError):
    code = "below_minimum"

    def __init__(self, total_minor: int, minimum_minor: int):
        super().__init__(f"Total {total_minor} is below the financeable minimum of {minimum_minor}")
        self.total_minor = total_minor
        self.minimum_minor = minimum_minor


class InvalidCartError(CheckoutValidationError):
    code = "invalid_cart"


class InvalidOriginError(CheckoutValidationError):
    code = "invalid_origin"


# --- Configuration ---
class CredentialError(CheckoutError):
    status_code = 500

    def __init__(self, message: str = "Missing AFFIRM_PUBLIC_KEY or AFFIRM_PRIVATE_KEY env vars"):
        super().__init__(message)


# --- Fournisseur ---
class ProviderRejection(CheckoutError):
    """Statut non-2xx du fournisseur; le corps est conservé tel quel."""

    def __init__(self, step: str, provider_status: int, provider_body: Any, charge_id: Optional[str] = None):
        super().__init__(f"{step} rejected by provider (status={provider_status})")
        self.step = step
        self.provider_status = provider_status
        self.provider_body = provider_body
        self.charge_id = charge_id
        self.status_code = provider_status

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False, "step": self.step, "error": self.provider_body}
        if self.charge_id:
            body["charge_id"] = self.charge_id
        return body


class IntegrationContractError(CheckoutError):
    """
    Le fournisseur a répondu 2xx sans respecter la forme documentée.
    Cas le plus grave: une charge peut exister côté fournisseur sans être suivie ici.
    """
    code = "missing_charge_id"

    def __init__(self, step: str, provider_body: Any, message: str = "Authorize succeeded but missing charge id"):
        super().__init__(message)
        self.step = step
        self.provider_body = provider_body

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["raw"] = self.provider_body
        return body


class TransportError(CheckoutError):
    def __init__(self, step: str, cause: Exception, charge_id: Optional[str] = None):
        super().__init__(str(cause) or cause.__class__.__name__)
        self.step = step
        self.cause = cause
        self.charge_id = charge_id


# --- Client ---
class SdkLoadError(CheckoutError):
    code = "sdk_load_failed"
