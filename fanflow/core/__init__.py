"""
Core modules: the fan-out executor, its result models, errors and settings.
"""

from .errors import FanflowError, InvalidArgument, WorkFailed, BatchTimeout, HandleAlreadyJoined
from .models import FailurePolicy, Outcome, BatchSummary
from .configuration import ExecutorSettings, SettingsLoader, load_settings
from .executor import FanOutExecutor, TaskHandle, run_batch, run_all
from .controller import ExampleController

__all__ = [
    "FanflowError",
    "InvalidArgument",
    "WorkFailed",
    "BatchTimeout",
    "HandleAlreadyJoined",
    "FailurePolicy",
    "Outcome",
    "BatchSummary",
    "ExecutorSettings",
    "SettingsLoader",
    "load_settings",
    "FanOutExecutor",
    "TaskHandle",
    "run_batch",
    "run_all",
    "ExampleController",
]
