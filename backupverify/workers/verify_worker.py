"""
Worker for running a backup verification off the caller's thread.

Usage:
    worker = VerifyWorker(original, backup, options)
    thread = QThread()
    worker.moveToThread(thread)
    thread.started.connect(worker.run)
    worker.signals.finished.connect(thread.quit)
    thread.start()
"""

from __future__ import annotations

from enum import Enum, auto
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot, QMutex, QMutexLocker

from backupverify.core.models import Summary, VerifyOptions, VerifyProgress
from backupverify.core.verify.comparator import TreeComparator


class WorkerState(Enum):
    """State of a verification worker."""
    PENDING = auto()
    RUNNING = auto()
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()


class VerifySignals(QObject):
    """Signals delivering a run's progress and outcome to the receiving thread."""

    # One per enumerated entry
    progress = pyqtSignal(VerifyProgress)

    # Run completed with its Summary
    finished = pyqtSignal(Summary)

    # Run aborted: (error_type, message)
    error = pyqtSignal(str, str)

    # Run stopped by cancel(); the partial Summary is in `result`
    cancelled = pyqtSignal()


class VerifyWorker(QObject):
    """
    Runs one TreeComparator.compare and reports through `signals`.

    The total number of items is not known up front, so progress carries
    only the current path and the running item count.
    """

    def __init__(
        self,
        original_path: str | Path,
        backup_path: str | Path,
        options: Optional[VerifyOptions] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.original_path = Path(original_path)
        self.backup_path = Path(backup_path)
        self.options = options or VerifyOptions()
        self.signals = VerifySignals()

        self._comparator = TreeComparator(self.options)
        self._mutex = QMutex()
        self._state = WorkerState.PENDING
        self._cancelled = False
        self._result: Optional[Summary] = None
        self._error: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkerState:
        with QMutexLocker(self._mutex):
            return self._state

    def _set_state(self, value: WorkerState) -> None:
        with QMutexLocker(self._mutex):
            self._state = value

    @property
    def is_cancelled(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._cancelled

    @property
    def result(self) -> Optional[Summary]:
        """Summary of the run, partial when it was cancelled."""
        return self._result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        """(error_type, message) after a failed run."""
        return self._error

    def cancel(self) -> None:
        """Stop the verification at the next entry."""
        with QMutexLocker(self._mutex):
            self._cancelled = True
        self._comparator.cancel()

    @pyqtSlot()
    def run(self) -> None:
        """Run the verification; connect to QThread.started."""
        self._set_state(WorkerState.RUNNING)

        if self.is_cancelled:
            self._finish_cancelled(Summary(cancelled=True))
            return

        try:
            summary = self._comparator.compare(
                self.original_path,
                self.backup_path,
                self._on_progress
            )
        except Exception as e:
            self._error = (type(e).__name__, str(e))
            self._set_state(WorkerState.FAILED)
            self.signals.error.emit(type(e).__name__, str(e))
            return

        # A cancel that arrived before compare() started is reset by it
        if self.is_cancelled:
            summary.cancelled = True
            self._finish_cancelled(summary)
            return

        self._result = summary
        self._set_state(WorkerState.COMPLETED)
        self.signals.finished.emit(summary)

    def _on_progress(self, progress: VerifyProgress) -> None:
        if self.is_cancelled:
            self._comparator.cancel()
            return
        self.signals.progress.emit(progress)

    def _finish_cancelled(self, summary: Summary) -> None:
        self._result = summary
        self._set_state(WorkerState.CANCELLED)
        self.signals.cancelled.emit()
