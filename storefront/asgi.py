"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `storefront.asgi:app`.
- Toute la configuration (routes, middlewares, lifespan) est centralisée dans
  storefront.app_setup.factory, ce fichier ne fait qu'exposer l'instance `app`.
"""

from storefront.app_setup.factory import create_app

app = create_app()
