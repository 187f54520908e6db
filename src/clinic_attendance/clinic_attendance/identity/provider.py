from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol

from werkzeug.security import check_password_hash

from ..core.constants import DEFAULT_REAUTH_TIMEOUT_SECONDS
from ..core.exceptions import AuthenticationError
from ..directory.model import Professional
from ..directory.repository import DirectoryRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfessionalCredential:
    """Short-lived proof supplied at signing time, separate from the login session."""

    professional_id: str
    secret: str = field(repr=False)


class IdentityProvider(Protocol):
    def reauthenticate(self, professional: Professional, credential: ProfessionalCredential) -> bool:
        raise NotImplementedError


class PasswordIdentityProvider:
    """Checks the professional's password against the stored werkzeug hash."""

    def reauthenticate(self, professional: Professional, credential: ProfessionalCredential) -> bool:
        if not professional.is_active or professional.professional_id != credential.professional_id:
            return False
        if not credential.secret:
            return False
        try:
            return check_password_hash(professional.password_hash, credential.secret)
        except ValueError:
            # Placeholder or corrupted hash in the store.
            return False


class TimedReauthenticator:
    """Runs an ``IdentityProvider`` with a bounded wait.

    Each check runs on its own daemon thread, so a provider call that never
    returns only costs that thread and later checks still get a fresh one.
    A slow provider becomes ``AuthenticationError`` instead of hanging the caller.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        directory: DirectoryRepository,
        *,
        timeout_seconds: float = DEFAULT_REAUTH_TIMEOUT_SECONDS,
    ):
        self._provider = provider
        self._directory = directory
        self._timeout = float(timeout_seconds)

    def _check_within_deadline(self, professional: Professional, credential: ProfessionalCredential) -> Optional[bool]:
        outcome: dict = {}
        done = threading.Event()

        def check() -> None:
            try:
                outcome["ok"] = bool(self._provider.reauthenticate(professional, credential))
            except Exception as exc:
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=check, name=f"reauth-{credential.professional_id}", daemon=True).start()
        if not done.wait(self._timeout):
            return None
        if "error" in outcome:
            raise outcome["error"]
        return outcome["ok"]

    def verify(self, credential: ProfessionalCredential) -> Professional:
        professional = self._directory.get_professional(credential.professional_id)
        if not professional:
            raise AuthenticationError("Invalid professional credentials")

        ok = self._check_within_deadline(professional, credential)
        if ok is None:
            logger.warning("Re-authentication timed out", extra={"professional_id": credential.professional_id})
            raise AuthenticationError("Re-authentication timed out; please try again")

        if not ok:
            logger.warning("Re-authentication rejected", extra={"professional_id": credential.professional_id})
            raise AuthenticationError("Invalid professional credentials")
        return professional
