import pytest

from convoy.config import Config
from convoy.drivers.http import RemoteClient
from convoy.events import EventChannel
from convoy.plugins import PluginContext, PluginNotFoundError, default_drivers
from convoy.plugins.registry import DriverRegistry, Plugin, PluginRegistry

from .helpers import make_driver


@pytest.fixture
def context(tmp_path):
    config = Config({"driver.custom": {"speed": 2}}, {}, {"Configfile": False}, search_dir=tmp_path)
    return PluginContext(EventChannel("report"), EventChannel("driver"), config, log_level=2)


def test_register_as_decorator(context):
    registry = DriverRegistry()

    @registry.register
    class Custom(Plugin):
        name = "custom"

    plugin = registry.construct("custom", context)

    assert isinstance(plugin, Custom)
    assert plugin.events is context.events
    assert plugin.log_level == 2
    assert "custom" in registry
    assert registry.is_driver("custom")


def test_unnamed_plugin_is_rejected():
    class Nameless(Plugin):
        pass

    with pytest.raises(ValueError):
        DriverRegistry().register(Nameless)


def test_construct_unknown_name(context):
    with pytest.raises(PluginNotFoundError, match="Unknown driver 'ghost'"):
        DriverRegistry().construct("ghost", context)


def test_custom_name_matching(context):
    class Versioned(Plugin):
        name = "browser"

        @classmethod
        def matches_name(cls, name):
            return name.split("@")[0] == cls.name

    registry = DriverRegistry()
    registry.register(Versioned)

    assert registry.is_driver("browser@2")
    assert not registry.is_driver("browsers")


def test_driver_reads_namespaced_options(context):
    registry = DriverRegistry()
    registry.register(make_driver("custom", []))

    driver = registry.construct("custom", context)

    assert driver.options == {"speed": 2}


def test_default_drivers_registered():
    registry = default_drivers()

    assert registry.names() == ["native", "http"]
    assert registry.is_driver("native")
    assert not registry.is_driver("sauce")


@pytest.mark.parametrize("method", [
    PluginRegistry.register,
    PluginRegistry.find,
    PluginRegistry.construct,
    RemoteClient.post_run,
    RemoteClient.get_status,
    RemoteClient.get_result,
    RemoteClient.poll_until_complete,
])
def test_public_api_documents_arguments(method):
    assert "Args:" in method.__doc__
    assert "Returns:" in method.__doc__
