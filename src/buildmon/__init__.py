from .errors import BuildmonError
from .monitor import BuildMonitor, BuildResult
from .records import Alert, AlertLog, BuildHistory, BuildRecord, ConfigSnapshot
from .settings import BuildmonSettings, load_settings
from .stores import JsonStore, MemoryStore
from .types import Phase, Severity

__all__ = [
    # monitor
    "BuildMonitor",
    "BuildResult",
    # records
    "Alert",
    "AlertLog",
    "BuildHistory",
    "BuildRecord",
    "ConfigSnapshot",
    # settings
    "BuildmonSettings",
    "load_settings",
    # stores
    "JsonStore",
    "MemoryStore",
    # types
    "Phase",
    "Severity",
    # errors
    "BuildmonError",
]
