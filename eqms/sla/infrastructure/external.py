"""
SLA External Service Integrations
==================================

External services for escalation:
- YAML escalation policy with watchdog hot-reload
- APScheduler for the background escalation sweep
"""

import threading
from pathlib import Path
from typing import Awaitable, Callable, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from eqms.core.exceptions import ConfigurationException
from eqms.shared.infrastructure.logging import get_logger
from eqms.sla.application.services import IEscalationPolicyProvider
from eqms.sla.domain.value_objects import EscalationPolicy

logger = get_logger(__name__)


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for escalation policy file changes."""

    def __init__(self, policy_manager: "EscalationPolicyManager", policy_path: Path):
        self.policy_manager = policy_manager
        self.policy_path = policy_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.policy_path.resolve():
            logger.info("Escalation policy file changed", extra={"path": event.src_path})
            self.policy_manager.reload()


class EscalationPolicyManager(IEscalationPolicyProvider):
    """
    Thread-safe escalation policy holder with hot-reload support.

    Uses watchdog to monitor the YAML file and swap the policy without
    restarting the service. A reload that fails keeps the previous policy.
    """

    def __init__(self, default_warning_seconds: int = 300):
        self._default_warning_seconds = default_warning_seconds
        self._policy: Optional[EscalationPolicy] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> EscalationPolicy:
        """Initial policy load."""
        self._path = Path(path)
        policy = self._load_from_file(self._path)
        with self._lock:
            self._policy = policy
        return policy

    def _load_from_file(self, path: Path) -> EscalationPolicy:
        """
        Load and parse the YAML policy file.

        Raises:
            ConfigurationException: file exists but is not a valid policy
        """
        if not path.exists():
            logger.warning("Escalation policy file not found, using defaults", extra={"path": str(path)})
            return EscalationPolicy(default_warning_seconds=self._default_warning_seconds)

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        data.setdefault("default_warning_seconds", self._default_warning_seconds)
        try:
            return EscalationPolicy(**data)
        except (ValidationError, TypeError) as e:
            raise ConfigurationException(f"Invalid escalation policy file {path}: {e}") from e

    def reload(self) -> bool:
        """Reload policy from file."""
        if self._path is None:
            return False

        try:
            new_policy = self._load_from_file(self._path)
        except (ConfigurationException, OSError, yaml.YAMLError) as e:
            logger.error("Failed to reload escalation policy", extra={"error": str(e)})
            return False

        with self._lock:
            self._policy = new_policy
        logger.info("Escalation policy reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching the policy file for changes.

        Skips watching when the file does not exist or the platform cannot
        deliver file events.
        """
        if self._path is None:
            raise RuntimeError("Policy not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Escalation policy file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = PolicyFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.resolve().parent), recursive=False)
            self._observer.start()
            logger.info("Started watching escalation policy file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static policy", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching the policy file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def policy(self) -> EscalationPolicy:
        with self._lock:
            if self._policy is None:
                raise RuntimeError("Escalation policy not loaded")
            return self._policy

    def get_policy(self) -> EscalationPolicy:
        return self.policy


class EscalationScheduler:
    """
    Wrapper for APScheduler running the escalation sweep.

    max_instances=1 keeps sweeps from overlapping.
    """

    JOB_ID = "escalation_sweep"

    def __init__(self, interval_seconds: int = 30):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[object]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("Escalation scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="Escalation Sweep Job",
            misfire_grace_time=self.interval_seconds,
            coalesce=True,
            max_instances=1,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info(
            "Escalation scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Escalation scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
