"""
Evalflow Configuration.
"""

from .settings import (
    EvalflowSettings,
    JudgeSettings,
    RetrySettings,
    StoreSettings,
    WorkerSettings,
    configure_logging,
    configure_settings,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "EvalflowSettings",
    "JudgeSettings",
    "RetrySettings",
    "StoreSettings",
    "WorkerSettings",
    "configure_logging",
    "configure_settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
