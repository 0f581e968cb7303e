"""
Background workers for running a verification from a Qt application.

Workers report through Qt signals, which are delivered safely to the
thread that owns the receivers.
"""

from backupverify.workers.verify_worker import (
    VerifySignals,
    VerifyWorker,
    WorkerState,
)

__all__ = [
    'VerifySignals',
    'VerifyWorker',
    'WorkerState',
]
