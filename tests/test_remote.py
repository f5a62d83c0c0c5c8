import threading
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import pytest
import requests

from convoy import events as ev
from convoy.config import Config
from convoy.drivers.http import HttpDriver, RemoteClient
from convoy.drivers.retry_policy import RetryPolicy
from convoy.events import EventChannel
from convoy.plugins import PluginContext
from convoy.remote import Host
from convoy.runner import Runner

from .helpers import driver_registry, make_driver


def make_host(tmp_path, drivers=None, driver_names=("native", "http"), **kwargs):
    config = Config({"driver": list(driver_names)}, {}, {"Configfile": False}, search_dir=tmp_path)
    return Host(EventChannel("report"), EventChannel("driver"), config, drivers=drivers, **kwargs)


@contextmanager
def serving(tmp_path, drivers=None, driver_names=("native", "http")):
    """Run a remote host on a free port."""
    host = make_host(tmp_path, drivers=drivers, driver_names=driver_names)
    host.start(port=0, address="127.0.0.1")
    thread = threading.Thread(target=host.run, daemon=True)
    thread.start()
    try:
        yield host
    finally:
        host.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def host(tmp_path):
    with serving(tmp_path) as host:
        yield host


@pytest.fixture
def client(tmp_path):
    host = make_host(tmp_path, drivers=driver_registry(make_driver("grid", [])), driver_names=("grid",))
    host.app.config["TESTING"] = True
    with host.app.test_client() as client:
        client.host = host
        yield client


def test_health_and_unknown_session(client):
    assert client.get("/e2e/status/health").get_json() == {"status": "ok"}
    assert client.get("/e2e/status/nope").status_code == 404
    assert client.get("/e2e/result/nope").status_code == 404

    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Unknown endpoint: /nowhere"}


def test_rejects_run_without_tests(client):
    assert client.post("/e2e/run", json={"tests": []}).status_code == 400
    assert client.post("/e2e/run", json={"tests": [1]}).status_code == 400
    assert client.post("/e2e/run", data="{not json", content_type="application/json").status_code == 400


def test_status_and_result_of_a_session(client):
    session = client.host.execute(client.host.create_session(["a_test.py"]))

    status = client.get(f"/e2e/status/{session.session_id}?verbose=1")
    result = client.get(f"/e2e/result/{session.session_id}")

    assert status.status_code == 200
    assert status.get_json() == {"status": "completed", "completed": 0, "total": 1}
    assert result.get_json()["assertions"][0]["message"] == "grid assertion"
    assert result.get_json()["error"] is None


def test_submitted_run_is_queued(client):
    response = client.post("/e2e/run", json={"tests": ["a_test.py"]})

    data = response.get_json()
    assert response.status_code == 200
    assert data["session_id"] in client.host.sessions


def test_finished_sessions_are_evicted(tmp_path):
    host = make_host(
        tmp_path,
        drivers=driver_registry(make_driver("grid", [])),
        driver_names=("grid",),
        max_finished_sessions=2,
    )

    sessions = [host.execute(host.create_session(["a_test.py"])) for _ in range(3)]
    queued = host.create_session(["b_test.py"])
    host.evict_finished_sessions()

    assert list(host.sessions) == [sessions[1].session_id, sessions[2].session_id, queued.session_id]


def test_http_driver_round_trip(host, workdir, reporters, recorder):
    test_file = workdir / "remote_test.py"
    test_file.write_text(
        "def test_remote(test):\n"
        "    test.ok(True, 'remote pass')\n"
        "    test.ok(False, 'remote fail')\n"
    )
    host_assertions = []
    host.events.on(ev.ASSERTION, host_assertions.append)

    runner = Runner(
        {
            "tests": [str(test_file)],
            "driver": ["http"],
            "reporter": ["recorder"],
            "advanced": {"driver.http": {"url": f"http://127.0.0.1:{host.port}", "pollInterval": 0.05}},
        },
        reporters=reporters,
        search_dir=workdir,
    ).run()

    local = recorder().events_named(ev.ASSERTION)
    assert [(a["success"], a["message"]) for a in local] == [(True, "remote pass"), (False, "remote fail")]
    assert all(a["driver"] == "http" for a in local)
    assert len(host_assertions) == 2
    assert runner.exit_code == 1

    session = next(iter(host.sessions.values()))
    assert session.status == "completed"
    assert session.completed == 1
    assert host.events.listener_count(ev.ASSERTION) == 1


def test_remote_session_failure_surfaces_as_run_error(tmp_path, workdir, reporters, recorder):
    drivers = driver_registry(make_driver("grid", [], error=RuntimeError("no browser")))

    with serving(tmp_path, drivers=drivers, driver_names=("grid",)) as host:
        runner = Runner(
            {
                "tests": ["whatever_test.py"],
                "driver": ["http"],
                "reporter": ["recorder"],
                "advanced": {"driver.http": {"url": f"http://127.0.0.1:{host.port}", "pollInterval": 0.05}},
            },
            reporters=reporters,
            search_dir=workdir,
        ).run()

    errors = recorder().events_named(ev.ERROR)
    assert len(errors) == 1
    assert "no browser" in str(errors[0])
    assert runner.exit_code == 1


def response(status_code, payload=None):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


@patch("convoy.drivers.http.time.sleep")
def test_client_retries_server_errors(sleep):
    client = RemoteClient("http://grid", retry_policy=RetryPolicy(max_retries=2, initial_delay=0.5))
    client._session.request = MagicMock(side_effect=[
        response(503),
        response(200, {"session_id": "abc"}),
    ])

    session = client.post_run({"tests": ["a.py"]})

    assert session.session_id == "abc"
    sleep.assert_called_once_with(0.5)


@patch("convoy.drivers.http.time.sleep")
def test_client_gives_up_after_retries(sleep):
    client = RemoteClient("http://grid", retry_policy=RetryPolicy(max_retries=1))
    client._session.request = MagicMock(side_effect=requests.ConnectionError("refused"))

    with pytest.raises(requests.ConnectionError):
        client.get_status("abc")

    assert client._session.request.call_count == 2


def test_client_does_not_retry_client_errors():
    client = RemoteClient("http://grid", retry_policy=RetryPolicy(max_retries=3))
    client._session.request = MagicMock(return_value=response(404))

    with pytest.raises(requests.HTTPError):
        client.get_result("abc")

    assert client._session.request.call_count == 1


def test_retry_policy_backoff():
    policy = RetryPolicy(initial_delay=1.0, backoff_factor=2.0, max_delay=5.0)

    assert [policy.get_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]
    assert RetryPolicy.from_options({"max_retries": 7, "unknown": 1}).max_retries == 7


def http_driver(tmp_path, options):
    config = Config({}, {}, {"Configfile": False, "driver.http": options}, search_dir=tmp_path)
    return HttpDriver(PluginContext(EventChannel("report"), EventChannel("driver"), config))


def test_http_driver_retry_can_be_disabled(tmp_path):
    assert http_driver(tmp_path, {"retry": False}).client.retry_policy.max_retries == 0
    assert http_driver(tmp_path, {"retry": {"max_retries": 5}}).client.retry_policy.max_retries == 5
    assert http_driver(tmp_path, {}).client.retry_policy == RetryPolicy()
