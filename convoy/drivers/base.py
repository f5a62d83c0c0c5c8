"""Common driver behaviour."""

import logging
from typing import Optional

from .. import events as ev
from ..plugins.registry import Plugin, PluginContext

logger = logging.getLogger(__name__)


class Driver(Plugin):
    """A driver runs every configured test and reports its assertions.

    Subclasses implement ``run_test``. ``run`` returns once all tests are
    done, which is the completion signal the runner waits for.
    """

    def __init__(self, context: PluginContext):
        super().__init__(context)
        self.killed = False
        self.options = context.options_for("driver", self.name)
        self.driver_events.on(ev.KILL_ALL, self.kill)
        self.driver_events.on(ev.TESTS_COMPLETE, self.on_tests_complete)

    @property
    def tests(self) -> list[str]:
        return list(self.config.get("tests") or [])

    def run(self) -> None:
        """Run all tests sequentially, stopping early once killed."""
        for test in self.tests:
            if self.killed:
                logger.info(f"Driver '{self.name}' killed, skipping remaining tests")
                break
            self.run_test(test)

    def run_test(self, test: str) -> None:
        raise NotImplementedError

    def assertion(self, success: bool, message: str = "", test: Optional[str] = None, **extra) -> None:
        """Emit one assertion event on the report channel."""
        payload = {
            "success": bool(success),
            "message": message,
            "test": test,
            "driver": self.name,
        }
        payload.update(extra)
        self.events.emit(ev.ASSERTION, payload)

    def log(self, message: str) -> None:
        self.events.emit(ev.LOG, {"driver": self.name, "message": message})

    def kill(self, *args) -> None:
        self.killed = True

    def on_tests_complete(self, *args) -> None:
        """Hook for releasing resources once every driver finished."""
