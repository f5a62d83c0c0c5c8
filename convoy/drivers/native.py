"""In-process driver running python test modules.

A test module exposes ``test_*`` functions. Each one is called with a
``TestContext`` and may use plain ``assert`` statements or the context's
assertion helpers:

```python
def test_title(test):
    test.equal(page_title(), "Home")
    test.ok(is_logged_in(), "user is logged in")
```
"""

import logging
import os
import runpy
import traceback
from typing import Any, Callable, Optional

from .. import events as ev
from .base import Driver

logger = logging.getLogger(__name__)


class TestContext:
    """Assertion helpers handed to each test function."""

    __test__ = False

    def __init__(self, driver: "NativeDriver", test: str, name: str):
        self.driver = driver
        self.test = test
        self.name = name
        self.count = 0
        self.failed = 0

    def ok(self, value: Any, message: str = "") -> bool:
        """Assert that ``value`` is truthy."""
        return self._record(bool(value), message or f"expected truthy value, got {value!r}")

    def equal(self, actual: Any, expected: Any, message: str = "") -> bool:
        return self._record(actual == expected, message or f"expected {expected!r}, got {actual!r}")

    def not_equal(self, actual: Any, expected: Any, message: str = "") -> bool:
        return self._record(actual != expected, message or f"expected anything but {expected!r}")

    def raises(
        self,
        exc_type: type[BaseException],
        fn: Callable[..., Any],
        *args,
        message: str = "",
        **kwargs,
    ) -> bool:
        """Assert that calling ``fn`` raises ``exc_type``."""
        try:
            fn(*args, **kwargs)
        except exc_type:
            return self._record(True, message or f"raised {exc_type.__name__}")
        return self._record(False, message or f"{exc_type.__name__} not raised")

    def _record(self, success: bool, message: str) -> bool:
        self.count += 1
        if not success:
            self.failed += 1
        self.driver.assertion(success, message, test=self.test, case=self.name)
        return success


class NativeDriver(Driver):
    """Runs test files inside the current interpreter."""

    name = "native"

    def run_test(self, test: str) -> None:
        self.events.emit(ev.TEST_STARTED, {"driver": self.name, "test": test})

        try:
            cases = self.collect(test)
        except Exception as e:
            logger.debug(f"Failed to load {test}", exc_info=True)
            self.assertion(False, f"Failed to load test file: {type(e).__name__}: {e}", test=test)
            self.events.emit(ev.TEST_FINISHED, {"driver": self.name, "test": test, "status": False})
            return

        status = True
        for case_name, case in cases:
            if self.killed:
                break
            status = self.run_case(test, case_name, case) and status

        self.events.emit(ev.TEST_FINISHED, {"driver": self.name, "test": test, "status": status})

    def collect(self, test: str) -> list[tuple[str, Callable]]:
        """Load a test module and return its test functions in definition order."""
        namespace = runpy.run_path(os.fspath(test), run_name="convoy_test")
        return [
            (name, obj)
            for name, obj in namespace.items()
            if name.startswith("test_") and callable(obj)
        ]

    def run_case(self, test: str, case_name: str, case: Callable) -> bool:
        context = TestContext(self, test, case_name)

        try:
            self._call(case, context)
        except AssertionError as e:
            context._record(False, str(e) or f"{case_name} failed")
        except Exception as e:
            self.log(traceback.format_exc())
            context._record(False, f"{case_name} raised {type(e).__name__}: {e}")
        else:
            if context.count == 0:
                context._record(True, f"{case_name} passed")

        return context.failed == 0

    @staticmethod
    def _call(case: Callable, context: TestContext) -> Optional[Any]:
        code = getattr(case, "__code__", None)
        if code is not None and code.co_argcount == 0:
            return case()
        return case(context)
