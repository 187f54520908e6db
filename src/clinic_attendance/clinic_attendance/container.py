from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .appointments.mysql_appointment_repository import MySQLAppointmentRepository
from .appointments.repository import AppointmentRepository
from .appointments.service import AttendanceSessionController
from .common.datetime_utils import Clock, SystemClock
from .consents.drafts import ConsentDraftManager
from .consents.feed import ChangeFeed, LocalChangeFeed
from .consents.mysql_consent_repository import MySQLConsentRepository, MySQLConsentTemplateRepository
from .consents.repository import ConsentRepository, ConsentTemplateRepository
from .consents.sync import ConsentSyncChannel
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .directory.mysql_directory_repository import MySQLDirectoryRepository
from .directory.repository import DirectoryRepository
from .evolutions.mysql_evolution_repository import MySQLEvolutionRepository
from .evolutions.repository import EvolutionRepository
from .evolutions.service import EvolutionFinalizer
from .identity.provider import IdentityProvider, PasswordIdentityProvider, TimedReauthenticator
from .timer.store import JsonFileTimerStore, SessionTimerStore


@dataclass(frozen=True)
class Container:
    clock: Clock
    change_feed: ChangeFeed
    timer_store: SessionTimerStore

    appointments_repo: AppointmentRepository
    directory_repo: DirectoryRepository
    templates_repo: ConsentTemplateRepository
    consents_repo: ConsentRepository
    evolutions_repo: EvolutionRepository

    reauthenticator: TimedReauthenticator
    session_controller: AttendanceSessionController
    consent_drafts: ConsentDraftManager
    consent_sync: ConsentSyncChannel
    evolution_finalizer: EvolutionFinalizer


def wire_services(
    *,
    clock: Clock,
    change_feed: ChangeFeed,
    timer_store: SessionTimerStore,
    appointments_repo: AppointmentRepository,
    directory_repo: DirectoryRepository,
    templates_repo: ConsentTemplateRepository,
    consents_repo: ConsentRepository,
    evolutions_repo: EvolutionRepository,
    identity_provider: Optional[IdentityProvider] = None,
    public_base_url: str = constants.DEFAULT_PUBLIC_BASE_URL,
    consent_poll_seconds: float = constants.DEFAULT_CONSENT_POLL_SECONDS,
    reauth_timeout_seconds: float = constants.DEFAULT_REAUTH_TIMEOUT_SECONDS,
    adhoc_minutes: int = constants.DEFAULT_ADHOC_APPOINTMENT_MINUTES,
) -> Container:
    """Build the services on top of already constructed gateways."""

    reauthenticator = TimedReauthenticator(
        identity_provider or PasswordIdentityProvider(),
        directory_repo,
        timeout_seconds=reauth_timeout_seconds,
    )
    session_controller = AttendanceSessionController(
        appointments_repo,
        directory_repo,
        timer_store,
        clock=clock,
        adhoc_minutes=adhoc_minutes,
    )
    consent_drafts = ConsentDraftManager(consents_repo, templates_repo, directory_repo, clock=clock)
    consent_sync = ConsentSyncChannel(
        consents_repo,
        reauthenticator,
        change_feed,
        clock=clock,
        public_base_url=public_base_url,
        poll_interval=consent_poll_seconds,
    )
    evolution_finalizer = EvolutionFinalizer(
        evolutions_repo,
        session_controller,
        consent_drafts,
        timer_store,
        directory_repo,
        clock=clock,
    )

    return Container(
        clock=clock,
        change_feed=change_feed,
        timer_store=timer_store,
        appointments_repo=appointments_repo,
        directory_repo=directory_repo,
        templates_repo=templates_repo,
        consents_repo=consents_repo,
        evolutions_repo=evolutions_repo,
        reauthenticator=reauthenticator,
        session_controller=session_controller,
        consent_drafts=consent_drafts,
        consent_sync=consent_sync,
        evolution_finalizer=evolution_finalizer,
    )


def build_container(*, db_config: Mapping[str, Any], settings: Any = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))

    clock = SystemClock.for_zone(getattr(settings, "CLINIC_TIMEZONE", None))
    change_feed = LocalChangeFeed()
    timer_store = JsonFileTimerStore(
        getattr(settings, "TIMER_STATE_PATH", constants.DEFAULT_TIMER_STATE_PATH),
        clock=clock,
    )

    return wire_services(
        clock=clock,
        change_feed=change_feed,
        timer_store=timer_store,
        appointments_repo=MySQLAppointmentRepository(conn),
        directory_repo=MySQLDirectoryRepository(conn),
        templates_repo=MySQLConsentTemplateRepository(conn),
        consents_repo=MySQLConsentRepository(conn, change_feed),
        evolutions_repo=MySQLEvolutionRepository(conn),
        public_base_url=getattr(settings, "PUBLIC_BASE_URL", constants.DEFAULT_PUBLIC_BASE_URL),
        consent_poll_seconds=float(getattr(settings, "CONSENT_POLL_SECONDS", constants.DEFAULT_CONSENT_POLL_SECONDS)),
        reauth_timeout_seconds=float(
            getattr(settings, "REAUTH_TIMEOUT_SECONDS", constants.DEFAULT_REAUTH_TIMEOUT_SECONDS)
        ),
        adhoc_minutes=int(getattr(settings, "ADHOC_APPOINTMENT_MINUTES", constants.DEFAULT_ADHOC_APPOINTMENT_MINUTES)),
    )
