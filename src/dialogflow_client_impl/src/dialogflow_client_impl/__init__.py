"""Public exports for the Dialogflow client implementation package."""

from dialogflow_client_impl.dialogflow_impl import register as _register_client
from dialogflow_client_impl.models_impl import register as _register_models


def register() -> None:
    """Register the Dialogflow client and model implementations."""
    _register_client()
    _register_models()


register()
