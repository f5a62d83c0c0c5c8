"""Run orchestrator - executes a complete convoy run.

Coordinates the full run:
1. Resolve the effective configuration
2. Verify and construct reporters
3. Verify and construct drivers
4. Execute drivers one after another
5. Emit the final summary and compute the exit code
"""

import logging
import sys
from enum import Enum
from typing import Any, Callable, Optional

from .. import events as ev
from ..config import Config
from ..events import EventChannel
from ..plugins import PluginContext, default_drivers, default_reporters
from ..plugins.registry import DriverRegistry, ReporterRegistry
from ..timer import Timer

logger = logging.getLogger(__name__)

DEFAULTS = {
    "reporter": ["console"],
    "driver": ["native"],
    "browser": ["phantomjs"],
    "viewport": {"width": 1280, "height": 1024},
    "logLevel": 3,
}

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NO_TESTS = 127

# Peers closing their connection during teardown is not a test failure
BENIGN_FAILURE_MARKER = "Connection reset by peer"

NO_TESTS_MESSAGE = "No test files given!"


class RunnerState(str, Enum):
    INIT = "init"
    CONFIGURED = "configured"
    LOCAL_RUNNING = "local_running"
    REMOTE_LISTENING = "remote_listening"
    DRIVERS_COMPLETE = "drivers_complete"
    REPORTED = "reported"


class Runner:
    """Owns one run: its state, channels, plugins and exit code."""

    def __init__(
        self,
        options: dict[str, Any],
        reporters: Optional[ReporterRegistry] = None,
        drivers: Optional[DriverRegistry] = None,
        host_factory: Optional[Callable[..., Any]] = None,
        search_dir=None,
    ):
        """Initialize the runner.

        Args:
            options: Command line options (reporter, driver, tests, config,
                remote, advanced, ...).
            reporters: Reporter registry. Default: built-in reporters.
            drivers: Driver registry. Default: built-in drivers.
            host_factory: Builds the remote front-end in remote mode.
                Default: ``convoy.remote.Host``.
            search_dir: Directory for Configfile discovery.

        Raises:
            ConfigLoadError: If the config file cannot be loaded.
            SystemExit: With code 127 if no tests are given outside remote mode.
        """
        self._initialize()

        self.reporter_registry = reporters or default_reporters()
        self.driver_registry = drivers or default_drivers()
        self.host_factory = host_factory
        self.host = None

        self.options = self.normalize_options(options)
        self.advanced_options = self.options.get("advanced") or {}

        self.config = Config(DEFAULTS, self.options, self.advanced_options, search_dir=search_dir)

        # tests given on the command line replace the file's tests wholesale
        if self.options.get("tests"):
            self.config.config["tests"] = list(self.options["tests"])

        self.state = RunnerState.CONFIGURED

        self._setup_channels()
        self._setup_reporters()
        self.events.on(ev.ASSERTION, self._on_report_assertion)

        self.timer = Timer()

        if not isinstance(self.config.get("tests"), list) and not self.remote:
            self.events.emit(ev.ERROR, NO_TESTS_MESSAGE)
            self.driver_events.emit(ev.KILL_ALL)
            sys.exit(EXIT_NO_TESTS)

        self._setup_drivers()

    @property
    def remote(self) -> Any:
        return self.options.get("remote")

    @property
    def exit_code(self) -> int:
        if not self.runner_status or self.errors:
            return EXIT_FAILED
        return EXIT_OK

    def run(self) -> "Runner":
        """Execute all drivers sequentially, or hand over to the remote host."""
        if self.remote:
            self._run_remote()
            return self

        self.state = RunnerState.LOCAL_RUNNING
        self.timer.start()

        if not self._guarded(self.events.emit, ev.RUNNER_STARTED):
            return self

        for name, driver in self.drivers:
            if not self._guarded(self._run_driver, name, driver):
                return self

        self._guarded(self.tests_finished)
        return self

    def tests_finished(self) -> "Runner":
        """Signal drivers that all tests completed, then report.

        The summary is emitted only after every ``tests:complete`` listener
        has returned.
        """
        self.state = RunnerState.DRIVERS_COMPLETE
        self.driver_events.emit(ev.TESTS_COMPLETE)
        self.report_run_finished()
        return self

    def report_run_finished(self) -> "Runner":
        self.events.emit(ev.RUNNER_FINISHED, {
            "elapsedTime": self.timer.stop().elapsed_formatted(),
            "assertions": self.assertions_failed + self.assertions_passed,
            "assertionsFailed": self.assertions_failed,
            "assertionsPassed": self.assertions_passed,
            "status": self.runner_status,
        })
        self.state = RunnerState.REPORTED

        if not self.runner_status:
            logger.debug(f"{self.assertions_failed} assertion(s) failed, exiting with {EXIT_FAILED}")

        return self

    def normalize_options(self, options: dict[str, Any]) -> dict[str, Any]:
        """Strip whitespace around reporter and driver names."""
        options = dict(options or {})
        for key in ("reporter", "driver"):
            if options.get(key):
                options[key] = [name.strip() for name in options[key]]
        return options

    def _initialize(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[BaseException] = []

        self.runner_status = True
        self.assertions_failed = 0
        self.assertions_passed = 0

        self.state = RunnerState.INIT

    def _context(self) -> PluginContext:
        return PluginContext(
            events=self.events,
            driver_events=self.driver_events,
            config=self.config,
            log_level=self.config.get("logLevel") or 0,
        )

    def _setup_channels(self) -> None:
        self.events = EventChannel("report")
        self.events.on(ev.WARNING, self.warnings.append)
        self.driver_events = EventChannel("driver")

    def _setup_reporters(self) -> None:
        names = self.config.verify_reporters(self.config.get("reporter"), self.reporter_registry)
        self.options["reporter"] = names
        context = self._context()
        self.reporters = [self.reporter_registry.construct(name, context) for name in names]

    def _setup_drivers(self) -> None:
        names = self.config.verify_drivers(self.config.get("driver"), self.driver_registry)
        self.options["driver"] = names
        context = self._context()
        self.drivers = [(name, self.driver_registry.construct(name, context)) for name in names]

    def _on_report_assertion(self, assertion: dict) -> None:
        if assertion.get("success"):
            self.assertions_passed += 1
        else:
            self.runner_status = False
            self.assertions_failed += 1

    def _guarded(self, step: Callable[..., Any], *args) -> bool:
        """Run one step of a local run inside the error boundary.

        Returns:
            False if the run must stop.
        """
        try:
            step(*args)
        except (Exception, KeyboardInterrupt) as e:
            return self._shutdown(e)
        return not self.errors

    def _run_driver(self, name: str, driver) -> None:
        """Run one driver task between its lifecycle events.

        A benign driver failure still reports the driver as finished.
        """
        self.events.emit(ev.DRIVER_STARTED, {"driver": name})
        try:
            driver.run()
        except (Exception, KeyboardInterrupt) as e:
            if not self._shutdown(e):
                return
        self.events.emit(ev.DRIVER_FINISHED, {"driver": name})

    def _shutdown(self, exception: BaseException) -> bool:
        """Contain a failure raised during the run.

        Returns:
            True if the failure was benign and the run may continue.
        """
        if BENIGN_FAILURE_MARKER in str(exception):
            logger.debug(f"Ignoring benign failure: {exception}")
            return True

        logger.debug("Run failed", exc_info=exception)
        self.errors.append(exception)
        self.driver_events.emit(ev.KILL_ALL)
        self.events.emit(ev.ERROR, exception)
        return False

    def _run_remote(self) -> None:
        host_factory = self.host_factory
        if host_factory is None:
            from ..remote import Host
            host_factory = Host

        self.host = host_factory(self.events, self.driver_events, self.config, drivers=self.driver_registry)
        self.state = RunnerState.REMOTE_LISTENING
        self.host.run(port=self._remote_port())

    def _remote_port(self) -> Optional[int]:
        try:
            return int(str(self.remote))
        except ValueError:
            return None
