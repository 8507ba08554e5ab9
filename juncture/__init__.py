"""Python client for the Juncture integration API."""

from juncture.clients.public import PublicClient
from juncture.clients.secret import SecretClient
from juncture.exceptions import (
    JunctureConfigurationError,
    JunctureEnvironmentError,
    JunctureError,
    JunctureRequestError,
    ReauthorizationRequiredError,
)
from juncture.models import PublicClientConfig, SecretClientConfig

__all__ = [
    "JunctureConfigurationError",
    "JunctureEnvironmentError",
    "JunctureError",
    "JunctureRequestError",
    "PublicClient",
    "PublicClientConfig",
    "ReauthorizationRequiredError",
    "SecretClient",
    "SecretClientConfig",
]
