"""
Construction du payload checkout attendu par le fournisseur de financement.
- Items au schéma fournisseur (noms/SKU bornés, URLs absolues)
- Bloc billing/shipping depuis le client, sinon identité de repli
- Totaux toujours recalculés depuis les items retenus
"""
import re
import time
import uuid
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urljoin, urlparse

from pydantic import BaseModel

from storefront import config
from .cart import CartLineItem, CartSnapshot
from .errors import InvalidOriginError

DISPLAY_NAME_MAX = 120
SKU_MAX = 64
_SKU_FORBIDDEN = re.compile(r"[^A-Za-z0-9._-]")
_WHITESPACE = re.compile(r"\s+")


class ProviderName(BaseModel):
    first: str
    last: str


class ProviderAddress(BaseModel):
    line1: str
    line2: Optional[str] = None
    city: str
    state: str
    zipcode: str
    country: str


class ProviderContact(BaseModel):
    name: ProviderName
    address: ProviderAddress
    email: Optional[str] = None
    phone_number: Optional[str] = None


class ProviderItem(BaseModel):
    display_name: str
    sku: str
    unit_price: int
    qty: int
    item_url: str
    item_image_url: Optional[str] = None


class ProviderMerchant(BaseModel):
    user_confirmation_url: str
    user_cancel_url: str
    user_confirmation_url_action: str = "GET"
    name: str


class ProviderCheckoutPayload(BaseModel):
    merchant: ProviderMerchant
    billing: ProviderContact
    shipping: ProviderContact
    items: List[ProviderItem]
    currency: str = "USD"
    shipping_amount: int
    tax_amount: int
    total: int
    order_id: str
    metadata: Dict[str, str] = {"mode": "modal"}

    def to_wire(self) -> Dict[str, Any]:
        """Dict JSON-compatible, sans les champs optionnels absents."""
        return self.model_dump(exclude_none=True)


# module storefront.financing.payload
def new_order_id() -> str:
    """Identifiant unique par tentative: ORDER-<epoch ms>-<6 hex>."""
    return f"ORDER-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def normalize_origin(merchant_origin: str) -> str:
    origin = (merchant_origin or "").strip().rstrip("/")
    parsed = urlparse(origin)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidOriginError(f"merchant origin must be an absolute http(s) URL: {merchant_origin!r}")
    return origin


def to_absolute_url(url: Optional[str], origin: str) -> Optional[str]:
    """
    Résout une URL relative contre l'origine marchande.
    Retourne None si l'URL est vide ou ne donne pas une URL http(s) absolue.
    """
    if not url:
        return None
    try:
        resolved = urljoin(origin + "/", url.strip())
    except ValueError:
        return None
    parsed = urlparse(resolved)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return resolved


def sanitize_sku(raw: str, index: int) -> str:
    sku = _SKU_FORBIDDEN.sub("", _WHITESPACE.sub("-", (raw or "").strip()))[:SKU_MAX]
    return sku or f"SKU-{index + 1}"


def to_provider_item(item: CartLineItem, index: int, origin: str) -> ProviderItem:
    name = (item.name or f"Item {index + 1}")[:DISPLAY_NAME_MAX]
    return ProviderItem(
        display_name=name,
        sku=sanitize_sku(item.id, index),
        unit_price=item.unit_price_minor,
        qty=item.quantity,
        item_url=to_absolute_url(item.url, origin) or f"{origin}/",
        item_image_url=to_absolute_url(item.image_url, origin),
    )


def fallback_contact() -> ProviderContact:
    """Identité de repli (nom générique + adresse du marchand)."""
    return ProviderContact(
        name=ProviderName(first=config.FALLBACK_FIRST_NAME, last=config.FALLBACK_LAST_NAME),
        address=ProviderAddress(
            line1=config.FALLBACK_LINE1,
            city=config.FALLBACK_CITY,
            state=config.FALLBACK_STATE,
            zipcode=config.FALLBACK_ZIPCODE,
            country=config.FALLBACK_COUNTRY,
        ),
    )


def _field(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def contact_from_customer(customer: Optional[Mapping[str, Any]]) -> Optional[ProviderContact]:
    """
    Construit le contact fournisseur depuis les données client.
    - Accepte camelCase (firstName) ou snake_case (first_name), zip/zipcode/zip_code.
    - Retourne None si un champ requis manque ou est vide.
    """
    if not isinstance(customer, Mapping):
        return None
    address = customer.get("address")
    if not isinstance(address, Mapping):
        return None

    first = _field(customer, "first_name", "firstName")
    last = _field(customer, "last_name", "lastName")
    email = _field(customer, "email")
    phone = _field(customer, "phone", "phone_number")
    line1 = _field(address, "line1")
    city = _field(address, "city")
    state = _field(address, "state")
    zipcode = _field(address, "zip_code", "zipCode", "zipcode", "zip")
    if not all((first, last, email, phone, line1, city, state, zipcode)):
        return None

    return ProviderContact(
        name=ProviderName(first=first, last=last),
        address=ProviderAddress(
            line1=line1,
            line2=_field(address, "line2") or None,
            city=city,
            state=state,
            zipcode=zipcode,
            country=_field(address, "country") or config.FALLBACK_COUNTRY,
        ),
        email=email,
        phone_number=phone,
    )


def build_checkout_payload(
    snapshot: CartSnapshot,
    customer: Optional[Mapping[str, Any]] = None,
    merchant_origin: str = "",
) -> ProviderCheckoutPayload:
    """
    Mappe un CartSnapshot (+ client optionnel) vers le schéma checkout du fournisseur.
    - total = somme(unit_price * qty) + shipping + tax, recalculé sur la liste finale
      (jamais repris d'un total fourni par l'appelant).
    - order_id neuf à chaque appel.
    """
    origin = normalize_origin(merchant_origin or config.MERCHANT_ORIGIN)
    items = [to_provider_item(it, idx, origin) for idx, it in enumerate(snapshot.items)]
    contact = contact_from_customer(customer) or fallback_contact()
    subtotal = sum(it.unit_price * it.qty for it in items)

    return ProviderCheckoutPayload(
        merchant=ProviderMerchant(
            user_confirmation_url=f"{origin}/affirm/confirm",
            user_cancel_url=f"{origin}/affirm/cancel",
            name=config.MERCHANT_NAME,
        ),
        billing=contact,
        shipping=contact.model_copy(deep=True),
        items=items,
        shipping_amount=snapshot.shipping_minor,
        tax_amount=snapshot.tax_minor,
        total=subtotal + snapshot.shipping_minor + snapshot.tax_minor,
        order_id=new_order_id(),
    )
