"""JSON report generator.

Writes one JSON document per run, configured through ``reporter.json``:

```yaml
reporter.json:
  dest: build/convoy.json
```
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .. import events as ev
from ..plugins.registry import Plugin, PluginContext

DEFAULT_DEST = "report/convoy.json"


class JsonReporter(Plugin):
    """Collects run events and saves them as a JSON report."""

    name = "json"

    def __init__(self, context: PluginContext):
        super().__init__(context)
        options = context.options_for("reporter", self.name)
        self.dest = Path(options.get("dest", DEFAULT_DEST))
        self.tests: dict[str, dict[str, Any]] = {}
        self.errors: list[str] = []
        self.report_path: Optional[Path] = None

        self.events.on(ev.TEST_STARTED, self.on_test_started)
        self.events.on(ev.TEST_FINISHED, self.on_test_finished)
        self.events.on(ev.ASSERTION, self.on_assertion)
        self.events.on(ev.ERROR, self.on_error)
        self.events.on(ev.RUNNER_FINISHED, self.on_runner_finished)

    def _entry(self, driver: str, test: str) -> dict[str, Any]:
        key = f"{driver}:{test}"
        if key not in self.tests:
            self.tests[key] = {"driver": driver, "test": test, "status": None, "assertions": []}
        return self.tests[key]

    def on_test_started(self, data):
        self._entry(data["driver"], data["test"])

    def on_test_finished(self, data):
        entry = self._entry(data["driver"], data["test"])
        entry["status"] = "passed" if data.get("status") else "failed"

    def on_assertion(self, data):
        entry = self._entry(data.get("driver") or "", data.get("test") or "")
        entry["assertions"].append({
            "status": "pass" if data.get("success") else "fail",
            "message": data.get("message", ""),
        })

    def on_error(self, error):
        self.errors.append(str(error))

    def on_runner_finished(self, summary):
        self.report_path = self.save(self.generate(summary), self.dest)

    def generate(self, summary: dict[str, Any]) -> dict[str, Any]:
        """Build the report document from the final summary."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "passed" if summary["status"] else "failed",
            "summary": {
                "total": summary["assertions"],
                "passed": summary["assertionsPassed"],
                "failed": summary["assertionsFailed"],
                "elapsed": summary["elapsedTime"],
            },
            "tests": list(self.tests.values()),
            "errors": self.errors,
        }

    def save(self, report: dict[str, Any], path: Path) -> Path:
        """Save the report, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return path
