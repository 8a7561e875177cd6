import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./test.db")
    MIGRATION_DB_URI = data.get("MIGRATION_DB_URI", "sqlite:///./test.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Stripe
    STRIPE_SECRET_KEY = data.get("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET = data.get("STRIPE_WEBHOOK_SECRET", "")

    # Notifications
    NOTIFICATION_PUSH_WEBHOOK = data.get("NOTIFICATION_PUSH_WEBHOOK", None)
    NOTIFICATION_CHAT_WEBHOOK = data.get("NOTIFICATION_CHAT_WEBHOOK", None)
    NOTIFICATION_MUTED_CATEGORIES = data.get("NOTIFICATION_MUTED_CATEGORIES", [])

    # Points and charges
    YEN_PER_POINT = data.get("YEN_PER_POINT", 1.2)
    CONSUMPTION_TAX_RATE = data.get("CONSUMPTION_TAX_RATE", 0.1)
    MINIMUM_CHARGE_YEN = data.get("MINIMUM_CHARGE_YEN", 100)
    CAPTURE_DELAY_DAYS = data.get("CAPTURE_DELAY_DAYS", 2)
    EXCEEDED_PENDING_TRANSFER_DAYS = data.get("EXCEEDED_PENDING_TRANSFER_DAYS", 2)

    # Instant payouts
    INSTANT_MIN_AMOUNT_YEN = data.get("INSTANT_MIN_AMOUNT_YEN", 5000)
    INSTANT_MIN_POINTS = data.get("INSTANT_MIN_POINTS", 1000)
    INSTANT_MAX_RATIO = data.get("INSTANT_MAX_RATIO", 0.5)
    INSTANT_REQUIRES_APPROVAL = bool(data.get("INSTANT_REQUIRES_APPROVAL", False))

    # Fee tables keyed by cast grade, "default" as fallback; None keeps the built-in tables
    SCHEDULED_FEE_RATES = data.get("SCHEDULED_FEE_RATES", None)
    INSTANT_FEE_RATES = data.get("INSTANT_FEE_RATES", None)

    # Monthly close
    SCHEDULED_PAYOUT_OFFSET_MONTHS = data.get("SCHEDULED_PAYOUT_OFFSET_MONTHS", 1)
    BUSINESS_DAY_ADJUSTMENT = bool(data.get("BUSINESS_DAY_ADJUSTMENT", True))
    PLATFORM_TIMEZONE = data.get("PLATFORM_TIMEZONE", "Asia/Tokyo")

    # Workers
    MONTHLY_CLOSE_ENABLED = bool(data.get("MONTHLY_CLOSE_ENABLED", True))
    MONTHLY_CLOSE_INTERVAL_SECONDS = data.get("MONTHLY_CLOSE_INTERVAL_SECONDS", 86400)
    PAYOUT_DISPATCH_ENABLED = bool(data.get("PAYOUT_DISPATCH_ENABLED", True))
    PAYOUT_DISPATCH_INTERVAL_SECONDS = data.get("PAYOUT_DISPATCH_INTERVAL_SECONDS", 3600)
    PENDING_CAPTURE_ENABLED = bool(data.get("PENDING_CAPTURE_ENABLED", True))
    PENDING_CAPTURE_INTERVAL_SECONDS = data.get("PENDING_CAPTURE_INTERVAL_SECONDS", 600)
    EXCEEDED_PENDING_TRANSFER_ENABLED = bool(data.get("EXCEEDED_PENDING_TRANSFER_ENABLED", True))
    EXCEEDED_PENDING_TRANSFER_INTERVAL_SECONDS = data.get("EXCEEDED_PENDING_TRANSFER_INTERVAL_SECONDS", 3600)
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
