"""Runner module - run orchestration."""

from .orchestrator import (
    DEFAULTS,
    EXIT_FAILED,
    EXIT_NO_TESTS,
    EXIT_OK,
    Runner,
    RunnerState,
)

__all__ = [
    "DEFAULTS",
    "EXIT_FAILED",
    "EXIT_NO_TESTS",
    "EXIT_OK",
    "Runner",
    "RunnerState",
]
