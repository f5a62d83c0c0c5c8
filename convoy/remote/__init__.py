"""Remote module - front-end for externally triggered runs."""

from .host import DEFAULT_REMOTE_PORT, Host, RemoteRun, create_app

__all__ = ["DEFAULT_REMOTE_PORT", "Host", "RemoteRun", "create_app"]
