"""
Lance le serveur de checkout (authorize/capture, payload, carte) sous uvicorn.

Usage:
    python -m storefront
    PORT=8080 LOG_LEVEL=debug python -m storefront

Variables lues au démarrage (les clés Affirm/Stripe viennent de .env via storefront.config):
- PORT: port d'écoute (8000 par défaut)
- UVICORN_RELOAD: "1"/"true"/"yes" pour recharger à chaque modification (dev local)
- LOG_LEVEL: niveau des logs uvicorn et des loggers storefront.* ("info" par défaut)
"""
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "storefront.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=os.environ.get("LOG_LEVEL", "info"),
    )


if __name__ == "__main__":
    main()
