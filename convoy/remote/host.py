"""Remote front-end accepting externally triggered runs.

Serves the protocol spoken by the ``http`` driver as a Flask blueprint:
- POST /e2e/run              - {"tests": [...]} -> {"session_id", "status"}
- GET /e2e/status/health     - liveness check
- GET /e2e/status/:session   - {"status", "completed", "total"}
- GET /e2e/result/:session   - {"status", "assertions", "error"}

Sessions run one at a time on the host's drivers and share the host's
event channels, so local reporters see remote runs too.
"""

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.serving import BaseWSGIServer, make_server

from .. import events as ev
from ..config import Config
from ..events import EventChannel
from ..plugins import PluginContext, default_drivers
from ..plugins.registry import DriverRegistry

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_PORT = 9020

# Finished sessions kept for late status/result requests
MAX_FINISHED_SESSIONS = 100

FINISHED_STATUSES = ("completed", "failed")

# drivers that would forward the session to another host
FORWARDING_DRIVERS = {"http"}

remote_bp = Blueprint("remote", __name__, url_prefix="/e2e")


@dataclass
class RemoteRun:
    """One externally triggered run."""
    session_id: str
    tests: list[str]
    status: str = "queued"
    completed: int = 0
    assertions: list[dict] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.tests)

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def to_status(self) -> dict[str, Any]:
        return {"status": self.status, "completed": self.completed, "total": self.total}

    def to_result(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "assertions": self.assertions,
            "error": self.error,
        }


def get_host() -> "Host":
    return current_app.config["CONVOY_HOST"]


@remote_bp.route("/run", methods=["POST"])
def submit_run():
    """
    Queue a run of the given tests.

    Request body (JSON):
        {"tests": ["tests/login.py", ...]}

    Response:
        {"session_id": "...", "status": "queued"}
    """
    data = request.get_json(silent=True)
    tests = data.get("tests") if isinstance(data, dict) else None
    if not isinstance(tests, list) or not tests or not all(isinstance(t, str) for t in tests):
        return jsonify({"error": "'tests' must be a non-empty list of paths"}), 400

    session = get_host().submit(tests)
    return jsonify({"session_id": session.session_id, "status": session.status})


@remote_bp.route("/status/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@remote_bp.route("/status/<session_id>", methods=["GET"])
def session_status(session_id):
    session = get_host().sessions.get(session_id)
    if session is None:
        return jsonify({"error": f"Unknown session: {session_id}"}), 404
    return jsonify(session.to_status())


@remote_bp.route("/result/<session_id>", methods=["GET"])
def session_result(session_id):
    session = get_host().sessions.get(session_id)
    if session is None:
        return jsonify({"error": f"Unknown session: {session_id}"}), 404
    return jsonify(session.to_result())


def create_app(host: "Host") -> Flask:
    """Build the Flask app serving ``host``."""
    app = Flask(__name__)
    app.config["CONVOY_HOST"] = host
    app.register_blueprint(remote_bp)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": f"Unknown endpoint: {request.path}"}), 404

    return app


class Host:
    """HTTP server running tests on behalf of remote ``http`` drivers."""

    def __init__(
        self,
        events: EventChannel,
        driver_events: EventChannel,
        config: Config,
        drivers: Optional[DriverRegistry] = None,
        max_finished_sessions: int = MAX_FINISHED_SESSIONS,
    ):
        self.events = events
        self.driver_events = driver_events
        self.config = config
        self.drivers = drivers or default_drivers()
        self.max_finished_sessions = max_finished_sessions
        self.sessions: dict[str, RemoteRun] = {}
        self.app = create_app(self)
        self._run_lock = threading.Lock()
        self._sessions_lock = threading.Lock()
        self._server: Optional[BaseWSGIServer] = None

    @property
    def port(self) -> Optional[int]:
        return self._server.server_port if self._server else None

    def start(self, port: Optional[int] = None, address: str = "0.0.0.0") -> BaseWSGIServer:
        """Bind the server without serving yet. Port 0 picks a free port."""
        port = DEFAULT_REMOTE_PORT if port is None else port
        self._server = make_server(address, port, self.app, threaded=True)
        return self._server

    def run(self, port: Optional[int] = None) -> None:
        """Serve until interrupted."""
        server = self._server or self.start(port)
        logger.info(f"Listening for remote runs on port {self.port}")
        self.events.emit(ev.LOG, {"driver": "remote", "message": f"Listening on port {self.port}"})
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Remote host interrupted")
        finally:
            self.close()

    def close(self) -> None:
        if self._server:
            self._server.server_close()
            self._server = None

    def shutdown(self) -> None:
        """Stop ``serve_forever`` from another thread."""
        if self._server:
            self._server.shutdown()

    def create_session(self, tests: list[str]) -> RemoteRun:
        """Register a queued session for ``tests``."""
        session = RemoteRun(session_id=uuid.uuid4().hex, tests=list(tests))
        with self._sessions_lock:
            self.sessions[session.session_id] = session
        return session

    def submit(self, tests: list[str]) -> RemoteRun:
        """Queue a run and execute it in the background."""
        session = self.create_session(tests)
        threading.Thread(target=self.execute, args=(session,), daemon=True).start()
        return session

    def evict_finished_sessions(self) -> None:
        """Drop the oldest finished sessions beyond ``max_finished_sessions``."""
        with self._sessions_lock:
            finished = [sid for sid, session in self.sessions.items() if session.is_finished]
            for session_id in finished[:max(len(finished) - self.max_finished_sessions, 0)]:
                del self.sessions[session_id]

    def execute(self, session: RemoteRun) -> RemoteRun:
        """Run a session's tests on every local driver."""
        with self._run_lock:
            session.status = "running"
            config = copy.copy(self.config)
            config.config = {**self.config.config, "tests": session.tests}
            context = PluginContext(
                events=self.events,
                driver_events=self.driver_events,
                config=config,
                log_level=config.get("logLevel") or 0,
            )

            def on_test_finished(data):
                session.completed += 1

            self.events.on(ev.ASSERTION, session.assertions.append)
            self.events.on(ev.TEST_FINISHED, on_test_finished)
            drivers = []
            status = "completed"
            try:
                names = [
                    name for name in config.verify_drivers(config.get("driver"), self.drivers)
                    if name not in FORWARDING_DRIVERS
                ]
                for name in names:
                    driver = self.drivers.construct(name, context)
                    drivers.append(driver)
                    driver.run()
                for driver in drivers:
                    driver.on_tests_complete()
            except Exception as e:
                logger.error(f"Remote session {session.session_id} failed: {e}")
                session.error = f"{type(e).__name__}: {e}"
                status = "failed"
                self.events.emit(ev.ERROR, e)
            finally:
                self.events.off(ev.ASSERTION, session.assertions.append)
                self.events.off(ev.TEST_FINISHED, on_test_finished)
                for driver in drivers:
                    self.driver_events.off(ev.KILL_ALL, driver.kill)
                    self.driver_events.off(ev.TESTS_COMPLETE, driver.on_tests_complete)

            # status is final only after listeners are detached
            session.status = status

        self.evict_finished_sessions()
        return session
