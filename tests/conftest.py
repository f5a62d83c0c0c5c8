import pytest

from convoy.plugins.registry import ReporterRegistry

from .helpers import RecordingReporter


@pytest.fixture
def journal():
    return []


@pytest.fixture
def reporters():
    RecordingReporter.instances = []
    registry = ReporterRegistry()
    registry.register(RecordingReporter)
    return registry


@pytest.fixture
def recorder(reporters):
    """Returns the recording reporter of the most recent run."""
    def latest():
        return RecordingReporter.instances[-1]
    return latest


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path
