"""Shared plumbing of the scan phases."""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from mirrorhash.project import BackupProject, ScanRun
from mirrorhash.scanner.progress import ScanStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScanCancelledError(Exception):
    """Raised inside a phase once its cancellation token has been set."""


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError("Scan was cancelled.")


class ScanOperation:
    """Base class for scan phases.

    ``_run`` checks the project, runs the phase body on a dedicated worker
    thread, waits for it and guarantees that the status ends even when the
    body raises. Callers must not run two phases against one project at the
    same time.
    """

    def __init__(
        self,
        project: BackupProject,
        status: ScanStatus,
        cancellation: CancellationToken | None = None,
    ):
        self.project = project
        self.status = status
        self.cancellation = cancellation or CancellationToken()

    def _run(self, action: Callable[[ScanRun], T]) -> T:
        error: BaseException | None = None
        self.status.begin()
        try:
            scan = self.project.require_current_scan()
            with ThreadPoolExecutor(max_workers=1, thread_name_prefix=self.status.title) as executor:
                future = executor.submit(action, scan)
                try:
                    return future.result()
                except KeyboardInterrupt:
                    # The worker cannot be interrupted; ask it to stop at its next check.
                    self.cancellation.cancel()
                    raise
        except BaseException as e:
            error = e
            logger.error("%s failed: %s", self.status.title, e)
            raise
        finally:
            self.status.end(error)

    def _check_cancelled(self) -> None:
        self.cancellation.raise_if_cancelled()


class TreeProgress:
    """Folder counter shared by the recursive tree walks."""

    def __init__(self, total: int, index: int = 0):
        self.total = total
        self.index = index

    def advance(self) -> float:
        fraction = min(1.0, self.index / max(1, self.total))
        self.index += 1
        return fraction
