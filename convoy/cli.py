"""CLI entry point for convoy.

Usage:
    convoy tests/login.py tests/cart.py -d native,http -r console,json
    convoy --remote 9020
"""

import logging
import sys
from typing import Optional

import click

from . import __version__
from .config import ConvoyError
from .log import setup_logging
from .runner import Runner

logger = logging.getLogger(__name__)


def split_list(values: tuple[str, ...]) -> Optional[list[str]]:
    """Flatten repeated and comma-separated option values."""
    items = [item.strip() for value in values for item in value.split(",") if item.strip()]
    return items or None


def parse_viewport(value: Optional[str]) -> Optional[dict]:
    if not value:
        return None
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise click.BadParameter(f"expected WIDTHxHEIGHT, got '{value}'", param_hint="--viewport")
    return {"width": width, "height": height}


def build_options(
    tests: tuple[str, ...],
    reporter: tuple[str, ...],
    driver: tuple[str, ...],
    browser: tuple[str, ...],
    log_level: Optional[int],
    config: Optional[str],
    remote: Optional[str],
    viewport: Optional[str],
) -> dict:
    """Turn parsed command line arguments into runner options."""
    return {
        "tests": list(tests),
        "reporter": split_list(reporter),
        "driver": split_list(driver),
        "browser": split_list(browser),
        "logLevel": log_level,
        "config": config,
        "remote": remote,
        "viewport": parse_viewport(viewport),
    }


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("tests", nargs=-1, type=click.Path())
@click.option("-r", "--reporter", multiple=True, help="Reporter(s) to use, comma separated.")
@click.option("-d", "--driver", multiple=True, help="Driver(s) to run the tests with, comma separated.")
@click.option("-b", "--browser", multiple=True, help="Browser(s) the drivers should use, comma separated.")
@click.option("-l", "--logLevel", "log_level", type=click.IntRange(0, 5), help="Reporter verbosity (0-5).")
@click.option("-c", "--config", type=click.Path(), help="Path to the config file.")
@click.option(
    "--remote",
    is_flag=False,
    flag_value="true",
    default=None,
    metavar="[PORT]",
    help="Listen for remote runs instead of running locally.",
)
@click.option("--viewport", help="Viewport as WIDTHxHEIGHT.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.version_option(__version__, prog_name="convoy")
def main(tests, reporter, driver, browser, log_level, config, remote, viewport, verbose):
    """Run TESTS through the configured drivers and reporters.

    \b
    Exit status:
      0    all assertions passed (or the remote host stopped)
      1    an assertion failed, a run-time error was reported, or the
           config file could not be loaded
      127  no test files were given
    """
    setup_logging(verbose)
    options = build_options(tests, reporter, driver, browser, log_level, config, remote, viewport)

    try:
        runner = Runner(options)
    except ConvoyError as e:
        click.secho(f"ERROR: {e}", fg="red", err=True)
        sys.exit(1)

    runner.run()
    sys.exit(runner.exit_code)


if __name__ == "__main__":
    main()
