"""Public exports for the SQLite livechat implementation package."""

from livechat_store_impl.sqlite_impl import SQLiteLivechatClient
from livechat_store_impl.sqlite_impl import register as _register_client


def register() -> None:
    """Register the SQLite livechat client implementation."""
    _register_client()


register()

__all__ = ["SQLiteLivechatClient", "register"]
