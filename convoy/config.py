"""Run configuration for convoy.

Resolves one effective configuration from four tiers, lowest precedence first:

1. built-in defaults
2. the Configfile (yml, yaml, json5, json or py, auto-detected)
3. command line options
4. advanced overrides supplied by an embedding caller

Plugin specific options live in namespaced blocks, for example:

```yaml
driver:
  - http
driver.http:
  url: http://grid.local:9020
  timeout: 600
```
"""

import copy
import glob
import json
import logging
import os
import runpy
from pathlib import Path
from typing import Any, Optional, Union

import json5
import yaml

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "Configfile"

# Discovery priority when no explicit path is given
SUPPORTED_EXTENSIONS = ("yml", "yaml", "json5", "json", "py")


class ConvoyError(Exception):
    """Base class for convoy errors."""


class ConfigLoadError(ConvoyError):
    """A configuration file could not be read or parsed."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to load config file {self.path}: {reason}")


def deep_merge(target: dict, source: Optional[dict]) -> dict:
    """Merge ``source`` into ``target`` recursively.

    Nested mappings merge, everything else (lists included) is replaced.
    ``None`` in ``source`` never overrides an existing value.
    """
    if not source:
        return target

    for key, value in source.items():
        if value is None and key in target:
            continue
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)

    return target


class Config:
    """Effective configuration of a single run."""

    def __init__(
        self,
        defaults: dict,
        options: dict,
        advanced: Optional[dict] = None,
        search_dir: Optional[Union[str, Path]] = None,
    ):
        """Initialize and resolve the configuration.

        Args:
            defaults: Built-in default values.
            options: Normalized command line options.
            advanced: Highest-precedence overrides.
            search_dir: Directory for Configfile discovery and test globs.
                Defaults to the current working directory.

        Raises:
            ConfigLoadError: If the config file is unreadable or malformed.
        """
        self.default_filename = DEFAULT_FILENAME
        self.supported_extensions = SUPPORTED_EXTENSIONS
        self.advanced_options = advanced or {}
        self.search_dir = Path(search_dir) if search_dir else Path.cwd()
        self.config_path: Optional[str] = None
        self.config = self.load(defaults, options.get("config"), options)

    def resolve_config_path(self, explicit_path: Optional[Union[str, Path]] = None) -> Optional[str]:
        """Locate the config file to load.

        An existing ``explicit_path`` wins. Otherwise the first
        ``Configfile.<ext>`` found in extension priority order is used.

        Returns:
            Canonical path of the config file, or None.
        """
        if explicit_path:
            candidate = Path(explicit_path)
            if not candidate.is_absolute():
                candidate = self.search_dir / candidate
            if candidate.exists():
                return str(candidate.resolve())

        for ext in self.supported_extensions:
            candidate = self.search_dir / f"{self.default_filename}.{ext}"
            if candidate.exists():
                return str(candidate.resolve())

        return None

    def load(self, defaults: dict, explicit_path: Optional[str], options: dict) -> dict:
        """Load the config file and merge all tiers.

        Args:
            defaults: Built-in default values.
            explicit_path: Config file given on the command line.
            options: Command line options.

        Returns:
            The merged configuration mapping.
        """
        data: dict = {}

        if self.advanced_options.get("Configfile") is not False:
            self.config_path = self.resolve_config_path(explicit_path)
            data = self.load_file(self.config_path)
            if self.config_path:
                logger.debug(f"Loaded config file: {self.config_path}")

        options = dict(options)

        # an empty tests list from the command line means "not given"
        if "tests" in options and not options["tests"]:
            del options["tests"]

        tests = data.get("tests")
        if isinstance(tests, list) and tests:
            data["tests"] = self.expand_tests(tests)

        merged = copy.deepcopy(defaults)
        for tier in (data, options, self.advanced_options):
            deep_merge(merged, tier)

        return merged

    def expand_tests(self, patterns: list) -> list[str]:
        """Glob-expand test patterns, dropping duplicates in first-seen order.

        Patterns resolve against the search directory. Matches stay relative
        when it is the current directory and are joined to it otherwise, so
        drivers can open them from the process working directory.
        """
        tests: list[str] = []
        relative = self.search_dir.resolve() == Path.cwd().resolve()

        for pattern in patterns:
            matches = sorted(glob.glob(str(pattern), root_dir=self.search_dir, recursive=True))
            if not matches:
                logger.debug(f"Test pattern matched nothing: {pattern}")
            if not relative:
                matches = [str(self.search_dir / match) for match in matches]
            tests.extend(matches)

        return list(dict.fromkeys(tests))

    def load_file(self, path: Optional[Union[str, Path]]) -> dict:
        """Parse a config file based on its extension.

        Unknown extensions and a missing path yield an empty mapping.
        """
        if not path:
            return {}

        ext = Path(path).suffix.lstrip(".")
        reader = getattr(self, f"read_{ext}", None) if ext in self.supported_extensions else None
        if reader is None:
            return {}

        data = reader(path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(path, f"expected a mapping, got {type(data).__name__}")
        return data

    def get(self, item: str) -> Any:
        """Fetch a config item; None if it is absent or falsy."""
        return self.config.get(item) or None

    def read_yml(self, path: Union[str, Path]) -> Any:
        """Load a yaml config file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(path, str(e)) from e

    read_yaml = read_yml

    def read_json5(self, path: Union[str, Path]) -> Any:
        """Load a json5 config file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json5.load(f)
        except (OSError, ValueError) as e:
            raise ConfigLoadError(path, str(e)) from e

    def read_json(self, path: Union[str, Path]) -> Any:
        """Load a json config file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigLoadError(path, str(e)) from e

    def read_py(self, path: Union[str, Path]) -> Any:
        """Evaluate a python config file and return its ``config`` mapping.

        Only allowed when the ``allowExecutableConfig`` advanced option is set.
        """
        if not self.advanced_options.get("allowExecutableConfig"):
            raise ConfigLoadError(
                path,
                "executable config files are disabled; "
                "set the 'allowExecutableConfig' advanced option to enable them",
            )

        try:
            namespace = runpy.run_path(os.fspath(path), run_name="convoy_config")
        except Exception as e:
            raise ConfigLoadError(path, f"{type(e).__name__}: {e}") from e

        if "config" not in namespace:
            raise ConfigLoadError(path, "module does not define 'config'")
        return namespace["config"]

    def verify_reporters(self, reporters: Optional[list], registry) -> list[str]:
        """Keep only reporter names the registry knows."""
        return self._verify(reporters, "is_reporter", registry)

    def verify_drivers(self, drivers: Optional[list], registry) -> list[str]:
        """Keep only driver names the registry knows."""
        return self._verify(drivers, "is_driver", registry)

    def _verify(self, names: Optional[list], predicate: str, registry) -> list[str]:
        check = getattr(registry, predicate)
        verified = []

        for name in names or []:
            if check(name):
                verified.append(name)
            else:
                logger.warning(f"Ignoring unknown {predicate[3:]} '{name}'")

        return verified
