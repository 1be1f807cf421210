"""
Factory d'application recommandée pour les entrypoints (ex: storefront.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional

from fastapi import FastAPI

from storefront.config import ProviderSettings, load_provider_settings
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_store_middleware, register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers


def create_app(provider_settings: Optional[ProviderSettings] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - la configuration fournisseur figée (app.state.provider_settings)
      - middlewares de base, sécurité, no-store
      - gestionnaires d'exceptions et routers (financement, carte, health)
    Retour:
      FastAPI prêt à être utilisé par le serveur ASGI.
    """
    app = FastAPI(title="Storefront Checkout", lifespan=lifespan)
    app.state.provider_settings = provider_settings or load_provider_settings()
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_store_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
