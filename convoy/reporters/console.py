"""Console reporter."""

import click

from .. import events as ev
from ..plugins.registry import Plugin, PluginContext


class ConsoleReporter(Plugin):
    """Renders run events to the terminal.

    Verbosity follows ``logLevel``: 0 silent, 1 errors and summary,
    2 driver and test lifecycle, 3 every assertion, 4 driver log lines.

    An ``error`` event fails the run (exit status 1) even when no
    assertion failed.
    """

    name = "console"

    def __init__(self, context: PluginContext):
        super().__init__(context)
        self.level = int(context.log_level or 0)
        self.events.on(ev.RUNNER_STARTED, self.on_runner_started)
        self.events.on(ev.DRIVER_STARTED, self.on_driver_started)
        self.events.on(ev.DRIVER_FINISHED, self.on_driver_finished)
        self.events.on(ev.TEST_STARTED, self.on_test_started)
        self.events.on(ev.TEST_FINISHED, self.on_test_finished)
        self.events.on(ev.ASSERTION, self.on_assertion)
        self.events.on(ev.LOG, self.on_log)
        self.events.on(ev.WARNING, self.on_warning)
        self.events.on(ev.ERROR, self.on_error)
        self.events.on(ev.RUNNER_FINISHED, self.on_runner_finished)

    def on_runner_started(self, *args):
        if self.level >= 2:
            click.secho("Running tests", bold=True)

    def on_driver_started(self, data):
        if self.level >= 2:
            click.echo(f"Driver {data['driver']} started")

    def on_driver_finished(self, data):
        if self.level >= 2:
            click.echo(f"Driver {data['driver']} finished")

    def on_test_started(self, data):
        if self.level >= 2:
            click.secho(f"  RUNNING {data['test']}", fg="cyan")

    def on_test_finished(self, data):
        if self.level >= 2:
            status, color = ("PASSED", "green") if data.get("status") else ("FAILED", "red")
            click.secho(f"  {status} {data['test']}", fg=color)

    def on_assertion(self, data):
        if self.level >= 3:
            mark, color = ("✔", "green") if data.get("success") else ("✘", "red")
            click.secho(f"    {mark} {data.get('message') or ''}", fg=color)

    def on_log(self, data):
        if self.level >= 4:
            click.secho(f"    [{data.get('driver')}] {data.get('message')}", dim=True)

    def on_warning(self, message):
        if self.level >= 1:
            click.secho(f"WARNING: {message}", fg="yellow", err=True)

    def on_error(self, error):
        if self.level >= 1:
            click.secho(f"ERROR: {error}", fg="red", err=True)

    def on_runner_finished(self, data):
        if self.level < 1:
            return
        click.echo()
        if data["status"]:
            click.secho(f"{data['assertionsPassed']}/{data['assertions']} assertions passed", fg="green", bold=True)
        else:
            click.secho(
                f"{data['assertionsFailed']}/{data['assertions']} assertions failed",
                fg="red",
                bold=True,
            )
        click.echo(f"Elapsed time: {data['elapsedTime']}")
