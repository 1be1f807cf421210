from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from storefront.config import ProviderSettings
from storefront.financing.service import diag_info
from storefront.financing.views import get_provider_settings
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root():
    return {"ok": True}


@router.get("/provider")
def health_provider(settings: ProviderSettings = Depends(get_provider_settings)):
    return JSONResponse({"ok": True, "diag": diag_info(settings)})


@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return JSONResponse(rate_limit_health_info(request))
