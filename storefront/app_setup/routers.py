"""
Registre central des routers (paiement financé, carte, health).
"""
from fastapi import FastAPI
from storefront.financing import views as financing_views
from storefront.card import views as card_views
from storefront.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    - L'ordre n'a pas d'impact sauf conflits de chemins.
    """
    # Paiements
    app.include_router(financing_views.router)
    app.include_router(card_views.router)
    # Health & monitoring
    app.include_router(health_router)
