"""
Logique panier pure (pas de fournisseur, pas de réseau).
Construit un CartSnapshot immuable à partir du panier brut du front.
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from storefront.config import MIN_FINANCE_TOTAL_CENTS
from .errors import BelowMinimumError, EmptyCartError, InvalidCartError
from .money import format_minor, to_minor_units

logger = logging.getLogger(__name__)


class CartLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    unit_price_minor: int
    quantity: int
    url: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def subtotal_minor(self) -> int:
        return self.unit_price_minor * self.quantity


class CartSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: Tuple[CartLineItem, ...]
    shipping_minor: int = 0
    tax_minor: int = 0

    @property
    def subtotal_minor(self) -> int:
        return sum(it.subtotal_minor for it in self.items)

    @property
    def total_minor(self) -> int:
        return self.subtotal_minor + self.shipping_minor + self.tax_minor


# module storefront.financing.cart
def _quantity(raw: Any) -> Optional[int]:
    """
    Quantité entière stricte: 2, 2.0 ou "2" -> 2; 2.5, "abc", bool -> None.
    Une quantité non entière est rejetée, jamais arrondie.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) and raw.is_integer() else None
    text = str(raw).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    return None


def _optional_str(raw: Any) -> Optional[str]:
    text = str(raw).strip() if raw is not None else ""
    return text or None


def normalize_item(raw: Mapping[str, Any]) -> Optional[CartLineItem]:
    """
    Normalise une ligne du panier brut [{id, name|title, price, qty|quantity, url, image}].
    - Retourne None si la ligne doit être écartée (id vide, prix <= 0, quantité <= 0 ou non entière).
    """
    item_id = str(raw.get("id") or "").strip()
    if not item_id:
        return None
    unit_price_minor = to_minor_units(raw.get("price"))
    qty = _quantity(raw.get("qty", raw.get("quantity")))
    if unit_price_minor <= 0 or qty is None or qty <= 0:
        return None
    return CartLineItem(
        id=item_id,
        name=str(raw.get("name") or raw.get("title") or "").strip(),
        unit_price_minor=unit_price_minor,
        quantity=qty,
        url=_optional_str(raw.get("url")),
        image_url=_optional_str(raw.get("image_url") or raw.get("image")),
    )


def merge_lines(items: Iterable[CartLineItem]) -> List[CartLineItem]:
    """
    Agrège les lignes partageant le même id (quantités additionnées, ordre d'apparition conservé).
    La première ligne fixe le nom, le prix et les URLs.
    """
    merged: Dict[str, CartLineItem] = {}
    for it in items:
        prev = merged.get(it.id)
        if prev is None:
            merged[it.id] = it
        else:
            merged[it.id] = prev.model_copy(update={"quantity": prev.quantity + it.quantity})
    return list(merged.values())


def build_snapshot(
    raw_items: Iterable[Mapping[str, Any]],
    shipping: Any = 0,
    tax: Any = 0,
    *,
    minimum_minor: int = MIN_FINANCE_TOTAL_CENTS,
) -> CartSnapshot:
    """
    Construit un CartSnapshot validé.
    - Écarte les lignes invalides (voir normalize_item).
    - EmptyCartError si aucune ligne ne survit.
    - InvalidCartError si frais de port ou taxes négatifs.
    - BelowMinimumError si le total est sous le minimum finançable (avant tout appel fournisseur).
    """
    raw_list = [r for r in (raw_items or []) if isinstance(r, Mapping)]
    kept = [it for it in (normalize_item(r) for r in raw_list) if it is not None]
    dropped = len(raw_list) - len(kept)
    if dropped:
        logger.info("financing.cart dropped=%s kept=%s", dropped, len(kept))
    if not kept:
        raise EmptyCartError()

    shipping_minor = to_minor_units(shipping)
    tax_minor = to_minor_units(tax)
    if shipping_minor < 0 or tax_minor < 0:
        raise InvalidCartError("shipping and tax must be non-negative")

    snapshot = CartSnapshot(items=tuple(merge_lines(kept)), shipping_minor=shipping_minor, tax_minor=tax_minor)
    if snapshot.total_minor < minimum_minor:
        logger.info(
            "financing.cart below_minimum total=%s minimum=%s",
            format_minor(snapshot.total_minor),
            format_minor(minimum_minor),
        )
        raise BelowMinimumError(snapshot.total_minor, minimum_minor)
    return snapshot
