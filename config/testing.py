import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "clinic_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

PUBLIC_BASE_URL = "http://clinic.test"
CONSENT_POLL_SECONDS = 0.05
REAUTH_TIMEOUT_SECONDS = 1.0
ADHOC_APPOINTMENT_MINUTES = 30
TIMER_STATE_PATH = os.getenv("TIMER_STATE_PATH", "var/test_session_timers.json")
CLINIC_TIMEZONE = "America/Sao_Paulo"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
