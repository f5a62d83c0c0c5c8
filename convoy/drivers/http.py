"""Driver delegating tests to a remote convoy host over HTTP.

Protocol (served by ``convoy.remote.Host``):
- POST /e2e/run              - submit tests, returns a session id
- GET /e2e/status/:session   - poll session status
- GET /e2e/result/:session   - fetch the session's assertions

Configured through the ``driver.http`` block:

```yaml
driver.http:
  url: http://grid.local:9020
  timeout: 300
  pollInterval: 2
  retry:
    max_retries: 5    # or `retry: false` to fail on the first error
```
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import requests

from .. import events as ev
from ..plugins.registry import PluginContext
from .base import Driver
from .retry_policy import RetryPolicy, no_retry_policy

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:9020"


@dataclass
class RemoteSession:
    """Session created by a remote host."""
    session_id: str
    status: str = "running"
    completed: int = 0
    total: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_failed(self) -> bool:
        return self.status == "failed"


@dataclass
class RemoteResult:
    """Assertions collected by a remote session."""
    status: str
    assertions: list[dict] = field(default_factory=list)
    error: Optional[str] = None


class RemoteClient:
    """HTTP client for a remote convoy host."""

    def __init__(
        self,
        base_url: str,
        retry_policy: Optional[RetryPolicy] = None,
        request_timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the host (e.g., http://grid.local:9020)
            retry_policy: Retry policy for failed requests
            request_timeout: Timeout in seconds for fetching results
        """
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = request_timeout
        self._session = requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def post_run(self, payload: dict[str, Any]) -> RemoteSession:
        """Submit tests for execution.

        POST /e2e/run

        Args:
            payload: Request body with ``tests`` and run settings

        Returns:
            RemoteSession with the host-assigned session id

        Raises:
            requests.HTTPError: If the host rejects the request
        """
        response = self._request_with_retry("POST", f"{self.base_url}/e2e/run", json=payload, timeout=10)
        data = response.json()
        return RemoteSession(session_id=data["session_id"], status=data.get("status", "running"))

    def get_status(self, session_id: str) -> RemoteSession:
        """Get the current status of a session.

        GET /e2e/status/:session_id

        Args:
            session_id: Session identifier

        Returns:
            RemoteSession with status and progress counters

        Raises:
            requests.HTTPError: If the session is unknown to the host
        """
        response = self._request_with_retry("GET", f"{self.base_url}/e2e/status/{session_id}", timeout=5)
        data = response.json()
        return RemoteSession(
            session_id=session_id,
            status=data["status"],
            completed=data.get("completed", 0),
            total=data.get("total", 0),
        )

    def get_result(self, session_id: str) -> RemoteResult:
        """Get the assertions collected by a session.

        GET /e2e/result/:session_id

        Args:
            session_id: Session identifier

        Returns:
            RemoteResult with the session's assertions and error, if any

        Raises:
            requests.HTTPError: If the session is unknown to the host
        """
        response = self._request_with_retry(
            "GET",
            f"{self.base_url}/e2e/result/{session_id}",
            timeout=self.request_timeout,
        )
        data = response.json()
        return RemoteResult(
            status=data["status"],
            assertions=data.get("assertions", []),
            error=data.get("error"),
        )

    def poll_until_complete(
        self,
        session_id: str,
        timeout: float = 300.0,
        poll_interval: float = 2.0,
        on_progress: Optional[Callable[[RemoteSession], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> RemoteResult:
        """Poll until the session completes, then return its result.

        Args:
            session_id: Session identifier
            timeout: Maximum seconds to wait
            poll_interval: Seconds between status requests
            on_progress: Called with every polled status
            should_stop: Checked before each poll; True abandons the session

        Returns:
            RemoteResult of the completed session

        Raises:
            TimeoutError: If the session does not complete within timeout.
            RuntimeError: If the remote session failed.
        """
        start_time = time.time()

        while time.time() - start_time < timeout:
            if should_stop and should_stop():
                raise RuntimeError(f"Session {session_id} abandoned")

            status = self.get_status(session_id)
            if on_progress:
                on_progress(status)

            if status.is_completed:
                return self.get_result(session_id)

            if status.is_failed:
                result = self.get_result(session_id)
                raise RuntimeError(f"Remote session failed: {result.error or 'Unknown error'}")

            time.sleep(poll_interval)

        raise TimeoutError(f"Session {session_id} did not complete within {timeout}s")

    def _request_with_retry(self, method: str, url: str, **kwargs) -> requests.Response:
        """Execute a request, retrying connection errors, timeouts and 5xx.

        Args:
            method: HTTP method
            url: Request URL
            **kwargs: Passed to ``requests.Session.request``

        Returns:
            The successful response

        Raises:
            requests.HTTPError: On a 4xx response, or a 5xx once retries run out
            requests.ConnectionError: If the host stays unreachable
            requests.Timeout: If the host keeps timing out
        """
        for attempt in range(self.retry_policy.max_retries + 1):
            retries_left = attempt < self.retry_policy.max_retries
            try:
                response = self._session.request(method, url, **kwargs)
            except (requests.ConnectionError, requests.Timeout):
                if not retries_left:
                    raise
            else:
                if response.status_code < 500 or not retries_left:
                    response.raise_for_status()
                    return response

            delay = self.retry_policy.get_delay(attempt)
            logger.debug(f"Retrying {method} {url} in {delay:.1f}s")
            time.sleep(delay)

        raise RuntimeError("Request failed with no error captured")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class HttpDriver(Driver):
    """Runs each test on a remote convoy host."""

    name = "http"

    def __init__(self, context: PluginContext):
        super().__init__(context)
        self.url = self.options.get("url", DEFAULT_URL)
        self.timeout = float(self.options.get("timeout", 300))
        self.poll_interval = float(self.options.get("pollInterval", 2))
        retry = self.options.get("retry")
        if retry is False:
            retry_policy = no_retry_policy()
        else:
            retry_policy = RetryPolicy.from_options(retry if isinstance(retry, dict) else None)
        self.client = RemoteClient(self.url, retry_policy=retry_policy)

    def run_test(self, test: str) -> None:
        """Run ``test`` on the remote host and replay its assertions locally.

        Raises:
            RuntimeError: If the remote session failed or was abandoned
            TimeoutError: If the session outlives ``driver.http.timeout``
        """
        self.events.emit(ev.TEST_STARTED, {"driver": self.name, "test": test})

        session = self.client.post_run({
            "tests": [test],
            "browser": self.config.get("browser"),
            "viewport": self.config.get("viewport"),
        })
        self.log(f"Session {session.session_id} started on {self.url}")

        result = self.client.poll_until_complete(
            session.session_id,
            timeout=self.timeout,
            poll_interval=self.poll_interval,
            should_stop=lambda: self.killed,
        )

        status = True
        for assertion in result.assertions:
            success = bool(assertion.get("success"))
            status = status and success
            self.assertion(success, assertion.get("message", ""), test=test, remote=self.url)

        self.events.emit(ev.TEST_FINISHED, {"driver": self.name, "test": test, "status": status})

    def on_tests_complete(self, *args) -> None:
        """Release the HTTP session once every driver finished."""
        self.client.close()
