from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Iterable

from utils.time_utils import berlin_now_utc


log = logging.getLogger("werkstatt.startup")

EXPECTED_SLASH_COMMANDS = {
    "abmelden",
    "abmeldungen",
    "abmeldung-loeschen",
    "sanktion",
    "sanktionen",
    "sanktion-aufheben",
    "userinfo",
    "panel",
    "tuningchip-panel",
    "stance-panel",
    "xenon-panel",
    "tuningchip",
    "stance",
    "xenon",
    "eigentuning",
}

CONTAINER_INIT_PID = 1


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class SingletonGate:
    """Lock file guard so only one bot process works against the database.

    The lock holds ``{"pid", "timestamp", "started"}`` as JSON. A lock of a
    live foreign process refuses the start. A lock of a dead process, or one
    written by PID 1 (container restart), is taken over.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        pid: int | None = None,
        pid_alive: Callable[[int], bool] = _pid_alive,
    ) -> None:
        self.path = Path(path)
        self.pid = int(pid if pid is not None else os.getpid())
        self._pid_alive = pid_alive
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def _read_lock(self) -> dict | None:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            log.warning("Unreadable lock file %s, taking it over", self.path.as_posix())
            return None
        return payload if isinstance(payload, dict) else None

    async def try_acquire(self) -> bool:
        if self._held:
            return True

        if self.pid == CONTAINER_INIT_PID and self.path.exists():
            log.info("Running as PID 1, removing old lock file %s", self.path.as_posix())
            self.path.unlink(missing_ok=True)

        existing = self._read_lock()
        if existing is not None:
            lock_pid = int(existing.get("pid") or 0)
            if lock_pid == CONTAINER_INIT_PID:
                log.info("Old PID 1 lock found, overwriting (container restart)")
            elif lock_pid != self.pid and self._pid_alive(lock_pid):
                log.error(
                    "Bot already running (pid=%s, started=%s)",
                    lock_pid,
                    existing.get("started") or existing.get("timestamp"),
                )
                return False
            else:
                log.info("Stale lock of pid=%s found, taking it over", lock_pid)

        now = berlin_now_utc()
        payload = {
            "pid": self.pid,
            "timestamp": int(now.timestamp() * 1000),
            "started": now.isoformat(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        self._held = True
        log.info("Lock acquired (pid=%s)", self.pid)
        return True

    def release(self) -> bool:
        existing = self._read_lock()
        self._held = False
        if existing is None or int(existing.get("pid") or 0) != self.pid:
            return False
        self.path.unlink(missing_ok=True)
        log.info("Lock released")
        return True


def command_registry_health(registered_commands: Iterable[str]) -> tuple[list[str], list[str], list[str]]:
    registered = sorted(set(registered_commands))
    reg_set = set(registered)
    missing = sorted(EXPECTED_SLASH_COMMANDS - reg_set)
    unexpected = sorted(reg_set - EXPECTED_SLASH_COMMANDS)
    return registered, missing, unexpected
