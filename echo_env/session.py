"""Long-lived sync controller: status, lifecycle and trigger coalescing."""

from __future__ import annotations

import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol

from watchdog.observers import Observer

from .config import Settings, load_settings
from .errors import SyncError
from .logging import get_logger
from .sync import SyncOutcome, sync_env_files
from .watcher import ChangeCallback, WatchdogTriggerSource

logger = get_logger(__name__)


class SyncStatus(str, Enum):
    READY = "ready"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"

    @property
    def label(self) -> str:
        suffix = "syncing..." if self is SyncStatus.SYNCING else self.value
        return f"echo.env: {suffix}"


class TriggerSource(Protocol):
    def on_relevant_change(self, callback: ChangeCallback) -> None:
        ...

    def close(self) -> None:
        ...


Notifier = Callable[[str, str], None]
StatusListener = Callable[[SyncStatus], None]
TriggerFactory = Callable[[Settings], TriggerSource]


def source_trigger(settings: Settings, *, observer_factory=Observer) -> TriggerSource:
    """Watch the configured source files, ignoring the destination candidates."""
    root = settings.workspace_root
    return WatchdogTriggerSource(
        root,
        settings.source_files,
        ignore=[root / name for name in settings.destination_files],
        observer_factory=observer_factory,
    )


def config_trigger(settings: Settings, *, observer_factory=Observer) -> TriggerSource:
    """Watch the workspace config files themselves, not same-named files below."""
    root = settings.workspace_root
    return WatchdogTriggerSource(
        root,
        [str(path.relative_to(root)) for path in settings.config_paths()],
        exact=True,
        observer_factory=observer_factory,
    )


def _no_notifier(level: str, message: str) -> None:
    return None


class SyncSession:
    """Runs sync passes for one workspace, one at a time.

    Triggers that arrive while a pass is running are folded into a single
    follow-up pass performed by the thread that is already syncing.

    A failed pass leaves the status at ERROR until the next trigger, like the
    editor status bar did; the session itself stays ready for new triggers.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        trigger_factory: TriggerFactory = source_trigger,
        config_trigger_factory: TriggerFactory = config_trigger,
        sync_func: Callable[[Settings], SyncOutcome] = sync_env_files,
        settings_loader: Callable[[Path], Settings] = load_settings,
        notifier: Optional[Notifier] = None,
        status_listener: Optional[StatusListener] = None,
    ) -> None:
        self.settings = settings
        self._trigger_factory = trigger_factory
        self._config_trigger_factory = config_trigger_factory
        self._sync_func = sync_func
        self._settings_loader = settings_loader
        self._notifier = notifier or _no_notifier
        self._status_listener = status_listener

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._running = False
        self._pending = False

        self._source_trigger: Optional[TriggerSource] = None
        self._config_trigger: Optional[TriggerSource] = None
        self.status = SyncStatus.READY
        self.last_outcome: Optional[SyncOutcome] = None
        self.last_error: Optional[BaseException] = None
        self.passes = 0

    @property
    def started(self) -> bool:
        return self._source_trigger is not None

    def start(self) -> None:
        if self.started:
            return
        self._source_trigger = self._trigger_factory(self.settings)
        self._source_trigger.on_relevant_change(self._on_source_change)
        if self.settings.watch_config:
            self._config_trigger = self._config_trigger_factory(self.settings)
            self._config_trigger.on_relevant_change(self._on_config_change)
        self._set_status(SyncStatus.READY)
        logger.info("Session started", root=str(self.settings.workspace_root))

    def stop(self) -> None:
        for trigger in (self._source_trigger, self._config_trigger):
            if trigger is not None:
                trigger.close()
        was_started = self.started
        self._source_trigger = None
        self._config_trigger = None
        if was_started:
            logger.info("Session stopped", root=str(self.settings.workspace_root))

    def reload(self) -> None:
        """Re-read settings and rebuild the source trigger."""
        try:
            settings = self._settings_loader(self.settings.workspace_root)
        except ValueError as exc:
            logger.error("Ignoring invalid configuration", error=str(exc))
            self._notifier("error", f"Invalid echo-env configuration: {exc}")
            return

        self.settings = settings
        if self._source_trigger is not None:
            self._source_trigger.close()
            self._source_trigger = self._trigger_factory(settings)
            self._source_trigger.on_relevant_change(self._on_source_change)
        logger.info("Configuration reloaded", settings=settings.to_dict())

    def trigger(self, reason: str = "manual") -> bool:
        """Request a pass. Returns False when folded into a running pass."""
        with self._lock:
            if self._running:
                self._pending = True
                logger.debug("Sync already running, queued rerun", reason=reason)
                return False
            self._running = True
            self._idle.clear()

        try:
            while True:
                self._run_once(reason)
                with self._lock:
                    if not self._pending:
                        self._running = False
                        self._idle.set()
                        return True
                    self._pending = False
                    reason = "coalesced"
        except BaseException:
            with self._lock:
                self._running = False
                self._pending = False
                self._idle.set()
            raise

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._idle.wait(timeout)

    def _run_once(self, reason: str) -> None:
        self.passes += 1
        self._set_status(SyncStatus.SYNCING)
        logger.info("Sync started", reason=reason)
        try:
            outcome = self._sync_func(self.settings)
        except SyncError as exc:
            self._fail(exc, f"Error syncing .env files: {exc}")
            return
        except Exception as exc:
            logger.exception("Unexpected sync failure")
            self._fail(exc, "An unexpected error occurred while syncing .env files")
            return

        self.last_outcome = outcome
        self.last_error = None
        self._set_status(SyncStatus.SYNCED)
        if self.settings.show_notifications:
            self._notifier("info", ".env files synchronized successfully")

    def _fail(self, exc: BaseException, message: str) -> None:
        self.last_error = exc
        self._set_status(SyncStatus.ERROR)
        if isinstance(exc, SyncError):
            logger.error("Sync failed", error=str(exc), error_type=type(exc).__name__)
        self._notifier("error", message)

    def _set_status(self, status: SyncStatus) -> None:
        self.status = status
        if self._status_listener is not None:
            self._status_listener(status)

    def _on_source_change(self, path: Path) -> None:
        self.trigger(reason=f"changed:{path.name}")

    def _on_config_change(self, path: Path) -> None:
        logger.info("Configuration file changed", path=str(path))
        self.reload()
