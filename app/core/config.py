import os
from dotenv import load_dotenv

load_dotenv()

# -------- DATABASE --------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wedding_bookings.db")

# -------- REDIS --------
REDIS_URL = os.getenv("REDIS_URL")
NOTIFICATION_QUEUE_KEY = os.getenv("NOTIFICATION_QUEUE_KEY", "notifications:outbox")

# -------- AUTH (token issuance lives in the auth service) --------
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# -------- LOGGING --------
LOG_DIR = os.getenv("LOG_DIR", "logs")

# -------- SCHEDULER --------
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "true").lower() == "true"
AUTO_CANCELLATION_INTERVAL_MINUTES = int(os.getenv("AUTO_CANCELLATION_INTERVAL_MINUTES", 60))
PAYMENT_REMINDER_INTERVAL_MINUTES = int(os.getenv("PAYMENT_REMINDER_INTERVAL_MINUTES", 60))
SCANNER_LOCK_KEY = os.getenv("SCANNER_LOCK_KEY", "auto_cancellation:lock")
SCANNER_LOCK_TTL_SECONDS = int(os.getenv("SCANNER_LOCK_TTL_SECONDS", 15 * 60))
