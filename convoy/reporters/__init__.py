"""Reporters module - built-in run output consumers."""

from .console import ConsoleReporter
from .json_reporter import JsonReporter

__all__ = ["ConsoleReporter", "JsonReporter"]
