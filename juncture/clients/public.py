"""Public (browser-facing) Juncture client: starts OAuth flows."""

import logging
import os
import sys
import webbrowser
from collections.abc import Mapping
from typing import Any

from juncture.clients.base import JunctureClient, load_config
from juncture.exceptions import JunctureConfigurationError, JunctureEnvironmentError
from juncture.models import (
    SUPPORTED_FRAMEWORKS,
    AuthorizationUrl,
    ProviderType,
    PublicClientConfig,
    SupportedFramework,
)
from juncture.settings import JunctureSettings

logger = logging.getLogger(__name__)

PUBLIC_KEY_HEADER = "X-Juncture-Public-Key"


def _has_display() -> bool:
    # macOS and Windows open browsers without an X11/Wayland session
    if os.name != "posix" or sys.platform == "darwin":
        return True
    return any(os.environ.get(var) for var in ("DISPLAY", "WAYLAND_DISPLAY", "BROWSER"))


def _open_in_browser(uri: str) -> None:
    # xdg-open "succeeds" on a headless host, so check for a session first
    if not _has_display():
        raise JunctureEnvironmentError("No graphical display is available to open the authorization URL")
    try:
        browser = webbrowser.get()
    except webbrowser.Error as exc:
        raise JunctureEnvironmentError("No web browser is available to open the authorization URL") from exc
    if not browser.open(uri):
        raise JunctureEnvironmentError("The web browser refused to open the authorization URL")


class PublicClient(JunctureClient):
    """Client for Juncture's public routes.

    ``juncture_api_url`` is required. ``juncture_public_key`` is only needed in
    cloud mode; when set it is sent as ``X-Juncture-Public-Key`` on every call.
    """

    def __init__(self, config: PublicClientConfig | Mapping[str, Any]) -> None:
        cfg = load_config(PublicClientConfig, config)
        if not cfg.juncture_api_url:
            raise JunctureConfigurationError("juncture_api_url is required")
        headers = {PUBLIC_KEY_HEADER: cfg.juncture_public_key} if cfg.juncture_public_key else {}
        super().__init__(cfg, cfg.juncture_api_url, headers)

    @classmethod
    def from_settings(cls, settings: JunctureSettings) -> "PublicClient":
        return cls(PublicClientConfig(juncture_api_url=settings.api_url, juncture_public_key=settings.public_key))

    def get_config(self) -> PublicClientConfig:
        return super().get_config()

    def get_authorization_url(self, provider: ProviderType, external_id: str) -> AuthorizationUrl:
        """Ask Juncture for the provider's OAuth authorization URL.

        ``external_id`` is your own identifier for the connection; Juncture
        stores it with the tokens once the user finishes the flow.
        """
        return self._fetch(
            AuthorizationUrl,
            "POST",
            "/initiate-oauth-flow",
            "Failed to get OAuth authorization URL",
            json={"provider": provider, "external_id": external_id},
        )

    def redirect_to(
        self,
        provider: ProviderType,
        external_id: str,
        framework: SupportedFramework = "nextjs",
    ) -> AuthorizationUrl:
        """Start the OAuth flow and open the authorization page in the user's browser.

        ``framework`` records which front-end the caller is integrating from. Every
        supported value navigates the same way.

        Raises :class:`JunctureEnvironmentError` when no browser can be reached: no
        browser is registered, the browser refuses the URL, or (on X11/Wayland
        systems) neither ``DISPLAY``, ``WAYLAND_DISPLAY`` nor ``BROWSER`` is set.
        A browser that accepts the URL but never shows it cannot be detected.
        """
        if framework not in SUPPORTED_FRAMEWORKS:
            raise ValueError(f"Unsupported framework: {framework}")
        auth = self.get_authorization_url(provider, external_id)
        logger.debug("Opening %s authorization page (framework=%s)", provider, framework)
        _open_in_browser(auth.authorization_uri)
        return auth

    def reauthorize(
        self,
        provider: ProviderType,
        external_id: str,
        framework: SupportedFramework = "nextjs",
    ) -> AuthorizationUrl:
        """Re-run the OAuth flow for an existing connection whose tokens are no longer valid."""
        return self.redirect_to(provider, external_id, framework)

    def complete_integration(
        self,
        provider: ProviderType,
        external_id: str,
        framework: SupportedFramework = "nextjs",
    ) -> AuthorizationUrl:
        return self.redirect_to(provider, external_id, framework)
