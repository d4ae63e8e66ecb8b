import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_prefixes(raw):
    # "ChIJ=McDonald's;dd_=Some Place"
    prefixes = {}
    for chunk in (raw or "").split(";"):
        if "=" in chunk:
            prefix, name = chunk.split("=", 1)
            if prefix.strip() and name.strip():
                prefixes[prefix.strip()] = name.strip()
    return prefixes


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///feedme.db")

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_TOKEN_LOCATION = ["headers"]

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # webhooks
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    CLERK_WEBHOOK_SECRET = os.getenv("CLERK_WEBHOOK_SECRET", "")
    DOORDASH_WEBHOOK_SECRET = os.getenv("DOORDASH_WEBHOOK_SECRET", "")
    DOORDASH_WEBHOOK_VERIFY = _env_bool("DOORDASH_WEBHOOK_VERIFY", True)
    WEBHOOK_TOLERANCE_SECONDS = int(os.getenv("WEBHOOK_TOLERANCE_SECONDS", 300))

    # delivery provider
    DOORDASH_DEVELOPER_ID = os.getenv("DOORDASH_DEVELOPER_ID", "")
    DOORDASH_KEY_ID = os.getenv("DOORDASH_KEY_ID", "")
    DOORDASH_SIGNING_SECRET = os.getenv("DOORDASH_SIGNING_SECRET", "")
    DOORDASH_BASE_URL = os.getenv("DOORDASH_BASE_URL", "https://openapi.doordash.com")
    DOORDASH_TOKEN_TTL = int(os.getenv("DOORDASH_TOKEN_TTL", 1800))
    DOORDASH_TIMEOUT = float(os.getenv("DOORDASH_TIMEOUT", 10))

    # invitations
    INVITE_CODE_LENGTH = int(os.getenv("INVITE_CODE_LENGTH", 8))
    INVITE_CODE_MAX_ATTEMPTS = int(os.getenv("INVITE_CODE_MAX_ATTEMPTS", 10))

    # menus
    KNOWN_PLACE_PREFIXES = _parse_prefixes(
        os.getenv("KNOWN_PLACE_PREFIXES", "ChIJ=McDonald's")
    )
    MENU_SCRAPE_TIMEOUT = float(os.getenv("MENU_SCRAPE_TIMEOUT", 15))

    # orders, amounts in cents
    DEFAULT_DELIVERY_FEE = int(os.getenv("DEFAULT_DELIVERY_FEE", 399))


class DevelopmentConfig(Config):
    DEBUG = True
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")


class ProductionConfig(Config):
    DEBUG = False

    if os.getenv("DB_SSLROOTCERT"):
        SQLALCHEMY_DATABASE_URI = (
            f"{os.getenv('DATABASE_URL')}"
            f"?sslmode=verify-full"
            f"&sslrootcert={os.getenv('DB_SSLROOTCERT')}"
        )


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-key-with-at-least-32-bytes"
    STRIPE_WEBHOOK_SECRET = "whsec_stripe_test"
    CLERK_WEBHOOK_SECRET = "whsec_Y2xlcmstdGVzdC1zZWNyZXQ="
    DOORDASH_WEBHOOK_SECRET = "doordash-webhook-test"
    DOORDASH_WEBHOOK_VERIFY = True
    DOORDASH_DEVELOPER_ID = "dev-123"
    DOORDASH_KEY_ID = "key-456"
    DOORDASH_SIGNING_SECRET = "c2lnbmluZy1zZWNyZXQtZm9yLWRlbGl2ZXJ5LWFwaS10ZXN0cw"
    DOORDASH_BASE_URL = "https://doordash.test"
    KNOWN_PLACE_PREFIXES = {"ChIJ": "McDonald's"}


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
