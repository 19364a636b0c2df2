import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./crewup.db")
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "0") == "1"

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

# ✅ Scheduler (shared secret sent as a bearer token by the cron runner)
CRON_SECRET = os.getenv("CRON_SECRET")

# ✅ Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_PRICE_ID_PRO_MONTHLY = os.getenv("STRIPE_PRICE_ID_PRO_MONTHLY")
STRIPE_PRICE_ID_PRO_ANNUAL = os.getenv("STRIPE_PRICE_ID_PRO_ANNUAL")

# ✅ Frontend
APP_URL = os.getenv("APP_URL", "http://localhost:3000")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# ✅ Proximity alerts
PROXIMITY_ALERT_WINDOW_MINUTES = int(os.getenv("PROXIMITY_ALERT_WINDOW_MINUTES", "10"))
PROXIMITY_ALERT_USE_CURSOR = os.getenv("PROXIMITY_ALERT_USE_CURSOR", "1") == "1"

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
