"""Explicit plugin registry for drivers and reporters.

Plugins are registered by class. A registry answers whether a name is known
and constructs the plugin bound to the run's channels and configuration.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..config import Config, ConvoyError
from ..events import EventChannel


class PluginNotFoundError(ConvoyError):
    """No registered plugin matches the requested name."""


@dataclass
class PluginContext:
    """Everything a plugin is constructed with."""
    events: EventChannel
    driver_events: EventChannel
    config: Config
    log_level: int = 0

    def options_for(self, kind: str, name: str) -> dict:
        """Namespaced option block, e.g. ``driver.http``."""
        return self.config.get(f"{kind}.{name}") or {}


class Plugin:
    """Base class for drivers and reporters."""

    name: str = ""

    def __init__(self, context: PluginContext):
        self.context = context
        self.events = context.events
        self.driver_events = context.driver_events
        self.config = context.config
        self.log_level = context.log_level

    @classmethod
    def matches_name(cls, name: str) -> bool:
        """Check whether this plugin answers to ``name``.

        Args:
            name: Plugin name from the configuration

        Returns:
            True if ``name`` selects this plugin
        """
        return name == cls.name

    @classmethod
    def construct(cls, context: PluginContext) -> "Plugin":
        """Create the plugin bound to a run.

        Args:
            context: Channels and configuration of the run

        Returns:
            The constructed plugin
        """
        return cls(context)


class PluginRegistry:
    """Name to plugin factory mapping for one plugin kind."""

    def __init__(self, kind: str):
        self.kind = kind
        self._factories: list[type[Plugin]] = []

    def register(self, factory: type[Plugin]) -> type[Plugin]:
        """Register a plugin class. Usable as a class decorator.

        Args:
            factory: Plugin class with a non-empty ``name``

        Returns:
            ``factory`` unchanged

        Raises:
            ValueError: If ``factory`` has no plugin name
        """
        if not factory.name:
            raise ValueError(f"{factory.__name__} has no plugin name")
        self._factories.append(factory)
        return factory

    def find(self, name: str) -> Optional[type[Plugin]]:
        """Find the first registered plugin answering to ``name``.

        Args:
            name: Plugin name from the configuration

        Returns:
            The plugin class, or None if no plugin matches
        """
        for factory in self._factories:
            if factory.matches_name(name):
                return factory
        return None

    def names(self) -> list[str]:
        """Names of all registered plugins, in registration order."""
        return [factory.name for factory in self._factories]

    def is_registered(self, name: str) -> bool:
        return self.find(name) is not None

    def construct(self, name: str, context: PluginContext) -> Any:
        """Construct the plugin registered under ``name``.

        Args:
            name: Plugin name
            context: Channels and configuration of the run

        Returns:
            The constructed plugin

        Raises:
            PluginNotFoundError: If no plugin matches ``name``.
        """
        factory = self.find(name)
        if factory is None:
            raise PluginNotFoundError(f"Unknown {self.kind} '{name}'")
        return factory.construct(context)

    def __contains__(self, name: str) -> bool:
        return self.is_registered(name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self.names())})"


class ReporterRegistry(PluginRegistry):

    def __init__(self):
        super().__init__("reporter")

    def is_reporter(self, name: str) -> bool:
        return self.is_registered(name)


class DriverRegistry(PluginRegistry):

    def __init__(self):
        super().__init__("driver")

    def is_driver(self, name: str) -> bool:
        return self.is_registered(name)
