"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ADHOC_APPOINTMENT_MINUTES = 30
DEFAULT_FOLLOW_UP_MINUTES = 30
DEFAULT_CONSENT_POLL_SECONDS = 3.0
DEFAULT_REAUTH_TIMEOUT_SECONDS = 10.0
DEFAULT_STORE_RETRY_ATTEMPTS = 3
DEFAULT_TIMER_STATE_PATH = "var/session_timers.json"
DEFAULT_PUBLIC_BASE_URL = "http://localhost:5000"
MASKED_CPF = "___.___.___-__"
