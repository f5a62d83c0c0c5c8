"""Plugins module - driver and reporter registries."""

from .registry import (
    DriverRegistry,
    Plugin,
    PluginContext,
    PluginNotFoundError,
    PluginRegistry,
    ReporterRegistry,
)


def default_reporters() -> ReporterRegistry:
    """Fresh registry holding the built-in reporters."""
    from ..reporters import ConsoleReporter, JsonReporter

    registry = ReporterRegistry()
    registry.register(ConsoleReporter)
    registry.register(JsonReporter)
    return registry


def default_drivers() -> DriverRegistry:
    """Fresh registry holding the built-in drivers."""
    from ..drivers import HttpDriver, NativeDriver

    registry = DriverRegistry()
    registry.register(NativeDriver)
    registry.register(HttpDriver)
    return registry


__all__ = [
    "DriverRegistry",
    "Plugin",
    "PluginContext",
    "PluginNotFoundError",
    "PluginRegistry",
    "ReporterRegistry",
    "default_drivers",
    "default_reporters",
]
