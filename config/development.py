import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "clinic_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Base URL the patient's phone opens when scanning the consent QR code
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")
CONSENT_POLL_SECONDS = float(os.getenv("CONSENT_POLL_SECONDS", "3"))
REAUTH_TIMEOUT_SECONDS = float(os.getenv("REAUTH_TIMEOUT_SECONDS", "10"))
ADHOC_APPOINTMENT_MINUTES = int(os.getenv("ADHOC_APPOINTMENT_MINUTES", "30"))
TIMER_STATE_PATH = os.getenv("TIMER_STATE_PATH", "var/session_timers.json")
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "America/Sao_Paulo")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed a demo clinic, professional, patient and consent template
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
