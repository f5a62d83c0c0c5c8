"""Recording plugins used across the test suite."""

from convoy import events as ev
from convoy.drivers.base import Driver
from convoy.plugins.registry import DriverRegistry, Plugin


class RecordingReporter(Plugin):
    """Records every report-channel event it sees."""

    name = "recorder"
    instances: list = []

    def __init__(self, context):
        super().__init__(context)
        self.received = []
        RecordingReporter.instances.append(self)
        for event in (
            ev.RUNNER_STARTED,
            ev.RUNNER_FINISHED,
            ev.DRIVER_STARTED,
            ev.DRIVER_FINISHED,
            ev.ASSERTION,
            ev.ERROR,
        ):
            self.events.on(event, self._recorder(event))

    def _recorder(self, event):
        def record(*args):
            self.received.append((event, args[0] if args else None))
        return record

    def events_named(self, event):
        return [data for name, data in self.received if name == event]


def make_driver(name, journal, outcomes=(True,), error=None):
    """Build a driver class emitting ``outcomes`` as assertions.

    Every step is appended to ``journal`` as ``(name, step)``.
    """

    class ScriptedDriver(Driver):

        def __init__(self, context):
            super().__init__(context)
            journal.append((name, "constructed"))

        def run(self):
            journal.append((name, "start"))
            for success in outcomes:
                self.assertion(success, f"{name} assertion")
            if error is not None:
                raise error
            journal.append((name, "done"))

        def kill(self, *args):
            super().kill()
            journal.append((name, "killed"))

    ScriptedDriver.name = name
    return ScriptedDriver


def driver_registry(*driver_classes):
    registry = DriverRegistry()
    for cls in driver_classes:
        registry.register(cls)
    return registry


def failing_reporter(event, error):
    """Build a reporter raising ``error`` whenever ``event`` is emitted."""

    class FailingReporter(Plugin):

        name = "failing"

        def __init__(self, context):
            super().__init__(context)
            self.events.on(event, self.fail)

        def fail(self, *args):
            raise error

    return FailingReporter
