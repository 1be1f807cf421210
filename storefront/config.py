# storefront.config
from dataclasses import dataclass
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Affirm, Stripe), CORS/hosts
- Fournit ProviderSettings, résolu une seule fois au démarrage et injecté
  dans l'orchestrateur (jamais relu depuis l'environnement pendant un appel)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Affirm: environnement et clés (la clé privée ne quitte jamais le serveur)
AFFIRM_PROD_BASE = "https://api.affirm.com"
AFFIRM_SANDBOX_BASE = "https://sandbox.affirm.com"
AFFIRM_PROD_SDK_URL = "https://cdn1.affirm.com/js/v2/affirm.js"
AFFIRM_SANDBOX_SDK_URL = "https://cdn1-sandbox.affirm.com/js/v2/affirm.js"

AFFIRM_ENV = _clean_env(os.getenv("AFFIRM_ENV") or "").lower()
AFFIRM_PUBLIC_KEY = _clean_env(os.getenv("AFFIRM_PUBLIC_KEY") or "")
AFFIRM_PRIVATE_KEY = _clean_env(os.getenv("AFFIRM_PRIVATE_KEY") or "")
AFFIRM_COUNTRY_CODE = _clean_env(os.getenv("AFFIRM_COUNTRY_CODE") or "USA")
AFFIRM_SDK_URL = _clean_env(os.getenv("AFFIRM_SDK_URL") or "")
PROVIDER_TIMEOUT_SECONDS = _float_env("PROVIDER_TIMEOUT_SECONDS", 15.0)

# Marchand: nom affiché dans la modale et origine publique du site
MERCHANT_NAME = _clean_env(os.getenv("MERCHANT_NAME") or "ONE POINT MOTORS")
MERCHANT_ORIGIN = _clean_env(os.getenv("MERCHANT_ORIGIN") or os.getenv("BASE_URL") or "").rstrip("/")

# Montant minimum finançable (centimes), vérifié avant toute interaction fournisseur
MIN_FINANCE_TOTAL_CENTS = _int_env("MIN_FINANCE_TOTAL_CENTS", 5000)

# Identité de repli (le fournisseur collecte la vraie identité dans sa modale)
FALLBACK_FIRST_NAME = _clean_env(os.getenv("FALLBACK_FIRST_NAME") or "Online")
FALLBACK_LAST_NAME = _clean_env(os.getenv("FALLBACK_LAST_NAME") or "Customer")
FALLBACK_LINE1 = _clean_env(os.getenv("FALLBACK_LINE1") or "821 NE 79th St")
FALLBACK_CITY = _clean_env(os.getenv("FALLBACK_CITY") or "Miami")
FALLBACK_STATE = _clean_env(os.getenv("FALLBACK_STATE") or "FL")
FALLBACK_ZIPCODE = _clean_env(os.getenv("FALLBACK_ZIPCODE") or "33138")
FALLBACK_COUNTRY = _clean_env(os.getenv("FALLBACK_COUNTRY") or "US")

# Stripe (rail carte): clé secrète côté serveur uniquement
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_API_VERSION = _clean_env(os.getenv("STRIPE_API_VERSION") or "2024-06-20")

# CORS (le front appelle /authorize depuis le navigateur)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()]


@dataclass(frozen=True)
class ProviderSettings:
    """Configuration figée du fournisseur de financement (lecture seule)."""

    env: str
    base_url: str
    country_code: str
    public_key: str
    private_key: str
    timeout_seconds: float
    sdk_url: str

    @property
    def has_credentials(self) -> bool:
        return bool(self.public_key and self.private_key)

    @property
    def env_label(self) -> str:
        return self.env or "production"


def load_provider_settings() -> ProviderSettings:
    """
    Construit ProviderSettings à partir des constantes du module.
    - AFFIRM_ENV="sandbox" sélectionne la sandbox, toute autre valeur (ou vide) la production.
    - AFFIRM_SDK_URL surcharge l'URL du script si fournie.
    """
    sandbox = AFFIRM_ENV == "sandbox"
    return ProviderSettings(
        env=AFFIRM_ENV,
        base_url=AFFIRM_SANDBOX_BASE if sandbox else AFFIRM_PROD_BASE,
        country_code=AFFIRM_COUNTRY_CODE,
        public_key=AFFIRM_PUBLIC_KEY,
        private_key=AFFIRM_PRIVATE_KEY,
        timeout_seconds=PROVIDER_TIMEOUT_SECONDS,
        sdk_url=AFFIRM_SDK_URL or (AFFIRM_SANDBOX_SDK_URL if sandbox else AFFIRM_PROD_SDK_URL),
    )
