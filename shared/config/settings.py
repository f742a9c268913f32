import os
from dotenv import load_dotenv

load_dotenv()

# --- DATABASE ---
DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "marketplace")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# --- PUBLIC URLS ---
# Storefront the buyer lands on once payment is confirmed
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000").rstrip("/")
# Public address of this API; the gateway calls back here
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/")

# --- PAYMENTS ---
PAYMENT_GATEWAY = os.getenv("PAYMENT_GATEWAY", "paystack") # paystack, fake
PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY", "")
PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co").rstrip("/")
PAYMENT_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10"))

# --- LIMITS ---
ORDER_RATE_LIMIT = os.getenv("ORDER_RATE_LIMIT", "10/minute")
# memory:// is per process; point at redis:// when running several workers
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50

# --- OBSERVABILITY ---
SERVICE_NAME = os.getenv("SERVICE_NAME", "marketplace")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "true").lower() == "true"
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
