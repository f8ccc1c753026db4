import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./workshop.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Frontends allowed to call the API (comma separated)
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001,http://localhost:3002"
).split(",")

# Scheduling defaults, used when a tenant has not configured its own hours.
# Hours are UTC; stored timestamps are naive UTC as well.
DEFAULT_WORK_START_HOUR = int(os.getenv("DEFAULT_WORK_START_HOUR", "8"))
DEFAULT_WORK_END_HOUR = int(os.getenv("DEFAULT_WORK_END_HOUR", "18"))
DEFAULT_SLOT_INTERVAL_MINUTES = int(os.getenv("DEFAULT_SLOT_INTERVAL_MINUTES", "30"))
DEFAULT_APPOINTMENT_DURATION = int(os.getenv("DEFAULT_APPOINTMENT_DURATION", "60"))

MIN_APPOINTMENT_DURATION = 15
MAX_APPOINTMENT_DURATION = 480

# Allow booking in the past (back-office data entry); off in production
ALLOW_PAST_APPOINTMENTS = os.getenv("ALLOW_PAST_APPOINTMENTS", "false").lower() == "true"

# Reservation window used when a quote is approved without estimated hours
DEFAULT_RESERVATION_MINUTES = int(os.getenv("DEFAULT_RESERVATION_MINUTES", "60"))
