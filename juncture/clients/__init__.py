"""Juncture API clients."""

from juncture.clients.public import PublicClient
from juncture.clients.secret import SecretClient

__all__ = ["PublicClient", "SecretClient"]
