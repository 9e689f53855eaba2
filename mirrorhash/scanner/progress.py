"""Scan status objects and console progress reporting."""

import sys
import threading
import time
from collections.abc import Callable
from typing import TextIO

StatusListener = Callable[["ScanStatus"], None]


class ScanStatus:
    """Observable state of one long running scan phase.

    Listeners are called on the thread that changed the status, after the
    change has been applied.
    """

    def __init__(self, title: str):
        self.title = title
        self._text = ""
        self._progress: float | None = None
        self._is_running = False
        self._lock = threading.Lock()
        self._listeners: list[StatusListener] = []

    @property
    def text(self) -> str:
        return self._text

    @property
    def progress(self) -> float | None:
        return self._progress

    @property
    def is_running(self) -> bool:
        return self._is_running

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        self._listeners.remove(listener)

    def reset(self) -> None:
        with self._lock:
            self._is_running = False
            self._text = "Not yet started."
            self._progress = None
        self._notify()

    def begin(self) -> None:
        with self._lock:
            self._is_running = True
        self._notify()

    def update(self, text: str, progress: float | None = None) -> None:
        with self._lock:
            self._text = text
            self._progress = progress
        self._notify()

    def update_progress(self, progress: float | None) -> None:
        self.update(self._text, progress)

    def end(self, error: BaseException | None = None) -> None:
        with self._lock:
            if error is None:
                self._text = "Finished."
                self._progress = 1.0
            else:
                self._text = f"Failed: {error}"
            self._is_running = False
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


class FileScanStatus(ScanStatus):
    """Adds per-file progress inside the folder currently being hashed."""

    def __init__(self, title: str):
        super().__init__(title)
        self._folder_enumeration_text = ""
        self._folder_enumeration_progress = 0.0

    @property
    def folder_enumeration_text(self) -> str:
        return self._folder_enumeration_text

    @property
    def folder_enumeration_progress(self) -> float:
        return self._folder_enumeration_progress

    def update_folder_enumeration(self, text: str, progress: float) -> None:
        with self._lock:
            self._folder_enumeration_text = text
            self._folder_enumeration_progress = progress
        self._notify()


class FullScanStatus(ScanStatus):
    """Status of the complete pipeline plus one status per phase."""

    def __init__(self, title: str = "Full Scan"):
        super().__init__(title)
        self.folder_scan_status = ScanStatus("Folder Scan")
        self.file_scan_status = FileScanStatus("File Scan")
        self.duplicate_analysis_status = ScanStatus("Duplicate File Analysis")
        self.orphaned_file_scan_status = ScanStatus("Orphaned File Scan")

    @property
    def phase_statuses(self) -> list[ScanStatus]:
        return [
            self.folder_scan_status,
            self.file_scan_status,
            self.duplicate_analysis_status,
            self.orphaned_file_scan_status,
        ]

    @property
    def any_running(self) -> bool:
        return self.is_running or any(s.is_running for s in self.phase_statuses)

    def add_listener_to_all(self, listener: StatusListener) -> None:
        self.add_listener(listener)
        for status in self.phase_statuses:
            status.add_listener(listener)

    def reset_phases(self) -> None:
        for status in self.phase_statuses:
            status.reset()


class ProgressReporter:
    """Prints status changes to the console, at most once per interval."""

    def __init__(self, interval: float = 1.0, stream: TextIO | None = None):
        self.interval = interval
        self.stream = stream or sys.stderr
        self._last_report: dict[str, float] = {}
        self._started: dict[str, float] = {}

    def attach(self, status: ScanStatus) -> None:
        if isinstance(status, FullScanStatus):
            status.add_listener_to_all(self.on_status_changed)
        else:
            status.add_listener(self.on_status_changed)

    def on_status_changed(self, status: ScanStatus) -> None:
        now = time.time()

        if status.is_running and status.title not in self._started:
            self._started[status.title] = now
            print(f"[{status.title}] started", file=self.stream)
            return

        if not status.is_running and status.title in self._started:
            started = self._started.pop(status.title)
            duration = _format_duration(now - started)
            print(f"[{status.title}] {status.text} ({duration})", file=self.stream)
            return

        if not status.is_running:
            return
        if now - self._last_report.get(status.title, 0.0) < self.interval:
            return
        self._last_report[status.title] = now
        print(f"[{status.title}] {_format_progress(status.progress)} {status.text}", file=self.stream)


def _format_progress(progress: float | None) -> str:
    if progress is None:
        return "  ...  "
    return f"{progress * 100:5.1f}%"


def _format_duration(seconds: float) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
