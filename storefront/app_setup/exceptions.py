"""
Gestionnaires d'exceptions utilisés par la factory.
- CheckoutError échappée d'une vue -> même enveloppe JSON que les vues de paiement.
- HTTPException -> forme FastAPI {detail} (429 du rate limit inclus).
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.financing.errors import CheckoutError
from storefront.financing.reconciliation import envelope_for_error

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        status, body = envelope_for_error(exc)
        if status >= 500:
            logger.error("checkout error path=%s status=%s error=%s", request.url.path, status, exc.message)
        return JSONResponse(status_code=status, content=body, headers={"Cache-Control": "no-store"})

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
