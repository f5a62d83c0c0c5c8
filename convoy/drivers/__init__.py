"""Drivers module - built-in execution back-ends."""

from .base import Driver
from .http import HttpDriver, RemoteClient
from .native import NativeDriver, TestContext
from .retry_policy import RetryPolicy

__all__ = [
    "Driver",
    "HttpDriver",
    "NativeDriver",
    "RemoteClient",
    "RetryPolicy",
    "TestContext",
]
