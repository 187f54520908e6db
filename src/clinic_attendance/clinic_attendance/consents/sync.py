from __future__ import annotations

import io
import logging
import threading
from typing import Callable, Optional
from urllib.parse import urlencode

import qrcode

from ..common.datetime_utils import Clock, SystemClock
from ..core.constants import DEFAULT_CONSENT_POLL_SECONDS, DEFAULT_PUBLIC_BASE_URL
from ..core.enums import ConsentStatus
from ..core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidTransitionError,
    NotFoundError,
    NotReadyError,
)
from ..identity.provider import ProfessionalCredential, TimedReauthenticator
from .feed import ChangeFeed, NullChangeFeed
from .model import ConsentRecord
from .repository import ConsentRepository
from .signature import normalize_signature

logger = logging.getLogger(__name__)

OnConsentChange = Callable[[ConsentRecord], None]


class ConsentWatcher:
    """Professional-side observer of one consent record.

    Every state it reports comes from a store read. Push notifications only wake the
    poll loop early; without them a change is still seen within ``poll_interval``.
    """

    def __init__(
        self,
        consents: ConsentRepository,
        feed: ChangeFeed,
        consent_id: str,
        *,
        poll_interval: float = DEFAULT_CONSENT_POLL_SECONDS,
        on_change: Optional[OnConsentChange] = None,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._consents = consents
        self._feed = feed
        self._consent_id = consent_id
        self._poll_interval = float(poll_interval)
        self._on_change = on_change

        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._cond = threading.Condition()
        self._latest: Optional[ConsentRecord] = None
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def consent_id(self) -> str:
        return self._consent_id

    @property
    def latest(self) -> Optional[ConsentRecord]:
        with self._cond:
            return self._latest

    def start(self) -> "ConsentWatcher":
        if self._thread is not None:
            return self
        self._unsubscribe = self._feed.subscribe(self._consent_id, self._on_push)
        self.refresh()
        self._thread = threading.Thread(target=self._run, name=f"consent-watch-{self._consent_id}", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stopped.set()
        self._wake.set()
        self._release_subscription()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._poll_interval + 1.0)

    def _release_subscription(self) -> None:
        with self._cond:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def _on_push(self, record_id: str) -> None:
        if record_id == self._consent_id:
            self._wake.set()

    def refresh(self) -> Optional[ConsentRecord]:
        """Pull the record from the store and notify if its status changed."""

        record = self._consents.get_by_id(self._consent_id)
        changed = False
        with self._cond:
            previous = self._latest
            if record is not None and (previous is None or previous.status != record.status):
                changed = True
            if record is not None:
                self._latest = record
            self._cond.notify_all()

        if changed and self._on_change is not None:
            self._on_change(record)
        if record is not None and record.status == ConsentStatus.COMPLETED:
            self._stopped.set()
        return record

    def _run(self) -> None:
        try:
            while not self._stopped.is_set():
                self._wake.wait(self._poll_interval)
                self._wake.clear()
                if self._stopped.is_set():
                    break
                try:
                    self.refresh()
                except Exception:
                    # Transient store errors are retried on the next tick.
                    logger.exception("Consent poll failed", extra={"consent_id": self._consent_id})
        finally:
            self._release_subscription()

    def wait_for(self, status: ConsentStatus, timeout: float) -> Optional[ConsentRecord]:
        """Block until the watcher has observed ``status`` (or a later state)."""

        order = [ConsentStatus.PENDING, ConsentStatus.SIGNED, ConsentStatus.COMPLETED]

        def reached() -> bool:
            return self._latest is not None and order.index(self._latest.status) >= order.index(status)

        with self._cond:
            if self._cond.wait_for(reached, timeout=timeout):
                return self._latest
        return None


class ConsentSyncChannel:
    """Both halves of the cross-device handshake, synchronized only through the store.

    Patient device: opens ``sign_link`` and calls ``submit_signature``.
    Professional device: ``watch`` until signed, then ``finalize`` with a fresh credential.
    """

    def __init__(
        self,
        consents: ConsentRepository,
        reauth: TimedReauthenticator,
        feed: Optional[ChangeFeed] = None,
        *,
        clock: Optional[Clock] = None,
        public_base_url: str = DEFAULT_PUBLIC_BASE_URL,
        poll_interval: float = DEFAULT_CONSENT_POLL_SECONDS,
    ):
        self._consents = consents
        self._reauth = reauth
        self._feed = feed or NullChangeFeed()
        self._clock = clock or SystemClock()
        self._base_url = public_base_url.rstrip("/")
        self._poll_interval = float(poll_interval)

    def _get(self, consent_id: str) -> ConsentRecord:
        record = self._consents.get_by_id(consent_id)
        if not record:
            raise NotFoundError("Consent record not found")
        return record

    def status(self, consent_id: str) -> ConsentRecord:
        return self._get(consent_id)

    def sign_link(self, consent_id: str) -> str:
        return f"{self._base_url}/sign?{urlencode({'cid': consent_id})}"

    def sign_qr_png(self, consent_id: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(self.sign_link(consent_id))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def submit_signature(self, consent_id: str, signature_image: str) -> ConsentRecord:
        signature = normalize_signature(signature_image)
        record = self._get(consent_id)

        if record.status == ConsentStatus.SIGNED:
            return record
        if record.status == ConsentStatus.COMPLETED:
            raise InvalidTransitionError("This consent has already been finalized")

        changed = self._consents.mark_signed(consent_id=consent_id, patient_signature=signature, signed_at=self._clock.now())
        if not changed:
            # Lost a race with another writer; report whatever the store holds now.
            return self._get(consent_id)

        logger.info("Patient signed consent", extra={"consent_id": consent_id, "patient_id": record.patient_id})
        return self._get(consent_id)

    def watch(self, consent_id: str, on_change: Optional[OnConsentChange] = None) -> ConsentWatcher:
        self._get(consent_id)
        watcher = ConsentWatcher(
            self._consents,
            self._feed,
            consent_id,
            poll_interval=self._poll_interval,
            on_change=on_change,
        )
        return watcher.start()

    def finalize(self, consent_id: str, credential: ProfessionalCredential) -> ConsentRecord:
        record = self._get(consent_id)

        if record.status == ConsentStatus.COMPLETED:
            return record
        if record.status != ConsentStatus.SIGNED:
            raise NotReadyError("The patient has not signed yet; wait for the signature before finalizing")
        if credential.professional_id != record.professional_id:
            raise AuthenticationError("Only the professional responsible for this consent can finalize it")

        professional = self._reauth.verify(credential)
        if not professional.signature_data:
            raise ConfigurationError(
                "No signature on file for this professional; register one before finalizing consents"
            )

        changed = self._consents.mark_completed(
            consent_id=consent_id,
            professional_signature_snapshot=professional.signature_data,
            completed_at=self._clock.now(),
        )
        current = self._get(consent_id)
        if not changed and current.status != ConsentStatus.COMPLETED:
            raise NotReadyError("Consent changed while finalizing; reload and try again")

        logger.info(
            "Consent finalized",
            extra={"consent_id": consent_id, "professional_id": professional.professional_id},
        )
        return current
