from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional, Protocol

from ..common.datetime_utils import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionTimerState:
    started_at: datetime
    active: bool = True


class SessionTimerStore(Protocol):
    def start(self, patient_id: str) -> datetime:
        raise NotImplementedError

    def elapsed(self, patient_id: str) -> timedelta:
        raise NotImplementedError

    def clear(self, patient_id: str) -> None:
        raise NotImplementedError

    def is_active(self, patient_id: str) -> bool:
        raise NotImplementedError


class InMemoryTimerStore:
    """Keyed timer store for a single process.

    ``start`` never overwrites an existing origin, so calling it again after a
    reload keeps the elapsed time.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._states: Dict[str, SessionTimerState] = {}

    def _load(self) -> Dict[str, SessionTimerState]:
        return self._states

    def _save(self, states: Dict[str, SessionTimerState]) -> None:
        self._states = states

    def start(self, patient_id: str) -> datetime:
        with self._lock:
            states = self._load()
            existing = states.get(patient_id)
            if existing:
                return existing.started_at
            state = SessionTimerState(started_at=self._clock.now())
            states = {**states, patient_id: state}
            self._save(states)
        logger.info("Session timer started", extra={"patient_id": patient_id, "started_at": state.started_at.isoformat()})
        return state.started_at

    def get(self, patient_id: str) -> Optional[SessionTimerState]:
        with self._lock:
            return self._load().get(patient_id)

    def elapsed(self, patient_id: str) -> timedelta:
        state = self.get(patient_id)
        if not state:
            return timedelta(0)
        return max(self._clock.now() - state.started_at, timedelta(0))

    def is_active(self, patient_id: str) -> bool:
        state = self.get(patient_id)
        return bool(state and state.active)

    def clear(self, patient_id: str) -> None:
        with self._lock:
            states = self._load()
            if patient_id not in states:
                return
            states = {k: v for k, v in states.items() if k != patient_id}
            self._save(states)
        logger.info("Session timer cleared", extra={"patient_id": patient_id})


class JsonFileTimerStore(InMemoryTimerStore):
    """Timer store persisted to a JSON file so a restarted client recovers its timers.

    File layout: ``{"<patient_id>": {"started_at": "<iso>", "active": true}, ...}``.
    Writes go to a temp file in the same directory and are swapped in with
    ``os.replace``.
    """

    def __init__(self, path: str | Path, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._path = Path(path)

    def _load(self) -> Dict[str, SessionTimerState]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            logger.warning("Timer state file is corrupt; starting empty", extra={"path": str(self._path)})
            return {}

        states: Dict[str, SessionTimerState] = {}
        for patient_id, item in raw.items():
            try:
                states[patient_id] = SessionTimerState(
                    started_at=datetime.fromisoformat(item["started_at"]),
                    active=bool(item.get("active", True)),
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable timer entry", extra={"patient_id": patient_id})
        return states

    def _save(self, states: Dict[str, SessionTimerState]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            patient_id: {"started_at": s.started_at.isoformat(), "active": s.active}
            for patient_id, s in states.items()
        }
        fd, tmp_name = tempfile.mkstemp(prefix=".timers-", suffix=".json", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def format_elapsed(delta: timedelta) -> str:
    """``MM:SS`` display; hours roll into minutes."""
    total = max(int(delta.total_seconds()), 0)
    return f"{total // 60:02d}:{total % 60:02d}"
