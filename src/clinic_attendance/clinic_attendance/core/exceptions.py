class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current state."""

    code = "invalid_transition"


class NotFoundError(ValidationError):
    """Raised when a referenced record does not exist."""

    code = "not_found"


class ConfigurationError(DomainError):
    """Raised when the owning clinic (tenant) cannot be resolved. Not retryable."""

    code = "configuration_error"


class SessionNotActiveError(DomainError):
    """Raised when saving a note for a patient without an active session."""

    code = "session_not_active"


class ConsentRequiredError(DomainError):
    """Raised when a procedure needs a consent that is not signed yet."""

    code = "consent_required"


class NotReadyError(DomainError):
    """Raised when finalizing a consent the patient has not signed yet."""

    code = "not_ready"


class AuthenticationError(DomainError):
    """Raised when re-authentication fails or times out."""

    code = "authentication_error"


class TransientStoreError(Exception):
    """Connection-level store failure. Safe to retry."""
