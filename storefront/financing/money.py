"""
Conversion montants (unités majeures) -> centimes entiers.
"""
import math
from decimal import Decimal
from typing import Any


# module storefront.financing.money
def to_minor_units(amount: Any) -> int:
    """
    Convertit un montant (ex: 19.99) en centimes (1999).
    - floor(montant * 100 + 0.5) sur le flottant: demi vers +infini, jamais de troncature
      (19.99 * 100 = 1998.999... -> 1999, 0.125 -> 13, 1.005 -> 100).
    - Accepte int/float/Decimal/str numérique; NaN, infini, None, bool ou texte illisible -> 0.
    """
    if amount is None or isinstance(amount, bool):
        return 0
    try:
        value = float(amount.strip() if isinstance(amount, str) else amount)
    except (TypeError, ValueError):
        return 0
    scaled = value * 100
    if not math.isfinite(scaled):
        return 0
    return math.floor(scaled + 0.5)


def format_minor(amount_minor: int) -> str:
    """Affichage '1500.00' pour les logs et messages."""
    return f"{Decimal(amount_minor) / 100:.2f}"
