"""Tests for PublicClient using pytest-httpx."""

import json
import sys
import webbrowser

import pytest
from pytest_httpx import HTTPXMock

from juncture.clients.public import PUBLIC_KEY_HEADER, PublicClient
from juncture.exceptions import JunctureConfigurationError, JunctureEnvironmentError, JunctureRequestError
from juncture.models import SUPPORTED_FRAMEWORKS, PublicClientConfig

API_URL = "https://api.example.com"
AUTH_URI = "https://auth.atlassian.com/authorize?client_id=abc&state=xyz"


class _FakeBrowser:
    def __init__(self, opens: bool = True) -> None:
        self.opened: list[str] = []
        self._opens = opens

    def open(self, url: str) -> bool:
        self.opened.append(url)
        return self._opens


@pytest.fixture(autouse=True)
def graphical_session(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISPLAY", ":0")


@pytest.fixture
def browser(monkeypatch: pytest.MonkeyPatch) -> _FakeBrowser:
    fake = _FakeBrowser()
    monkeypatch.setattr(webbrowser, "get", lambda: fake)
    return fake


@pytest.fixture
def no_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing():
        raise webbrowser.Error("could not locate runnable browser")

    monkeypatch.setattr(webbrowser, "get", _missing)


def _add_oauth_response(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(
        method="POST",
        url=f"{API_URL}/initiate-oauth-flow",
        json={"authorization_uri": AUTH_URI},
    )


class TestConfigure:
    def test_requires_api_url(self) -> None:
        with pytest.raises(JunctureConfigurationError, match="juncture_api_url"):
            PublicClient({})

    def test_public_key_optional(self) -> None:
        client = PublicClient({"juncture_api_url": API_URL})
        assert PUBLIC_KEY_HEADER not in client.get_http_transport().headers

    def test_public_key_sent_as_header(self, public_client: PublicClient) -> None:
        assert public_client.get_http_transport().headers[PUBLIC_KEY_HEADER] == "pk_test_abcdef"

    def test_get_config_returns_copy(self) -> None:
        config = PublicClientConfig(juncture_api_url=API_URL)
        client = PublicClient(config)
        assert client.get_config() == config
        assert client.get_config() is not config


class TestGetAuthorizationUrl:
    def test_returns_uri(self, public_client: PublicClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/initiate-oauth-flow",
            match_headers={PUBLIC_KEY_HEADER: "pk_test_abcdef"},
            json={"authorization_uri": AUTH_URI},
        )
        auth = public_client.get_authorization_url("jira", "project-123")
        assert auth.authorization_uri == AUTH_URI
        assert json.loads(httpx_mock.get_request().content) == {"provider": "jira", "external_id": "project-123"}

    def test_accepts_camel_case_response(self, public_client: PublicClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=f"{API_URL}/initiate-oauth-flow", json={"authorizationUri": AUTH_URI}
        )
        assert public_client.get_authorization_url("jira", "project-123").authorization_uri == AUTH_URI

    def test_error_is_normalized(self, public_client: PublicClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/initiate-oauth-flow",
            status_code=401,
            json={"error": "Invalid public key"},
        )
        with pytest.raises(JunctureRequestError, match="^Invalid public key$"):
            public_client.get_authorization_url("jira", "project-123")

    def test_missing_uri_is_an_error(self, public_client: PublicClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=f"{API_URL}/initiate-oauth-flow", json={})
        with pytest.raises(JunctureRequestError, match="Failed to get OAuth authorization URL"):
            public_client.get_authorization_url("jira", "project-123")


class TestRedirect:
    @pytest.mark.parametrize("method", ["redirect_to", "reauthorize", "complete_integration"])
    @pytest.mark.parametrize("framework", SUPPORTED_FRAMEWORKS)
    def test_every_framework_navigates_the_same_way(
        self,
        public_client: PublicClient,
        httpx_mock: HTTPXMock,
        browser: _FakeBrowser,
        method: str,
        framework: str,
    ) -> None:
        _add_oauth_response(httpx_mock)
        auth = getattr(public_client, method)("jira", "project-123", framework)
        assert browser.opened == [AUTH_URI]
        assert auth.authorization_uri == AUTH_URI

    def test_default_framework(self, public_client: PublicClient, httpx_mock: HTTPXMock, browser: _FakeBrowser) -> None:
        _add_oauth_response(httpx_mock)
        public_client.redirect_to("jira", "project-123")
        assert browser.opened == [AUTH_URI]

    def test_no_browser_raises(self, public_client: PublicClient, httpx_mock: HTTPXMock, no_browser: None) -> None:
        _add_oauth_response(httpx_mock)
        with pytest.raises(JunctureEnvironmentError):
            public_client.redirect_to("jira", "project-123", "nextjs")

    @pytest.mark.skipif(sys.platform == "win32", reason="display variables only matter on POSIX")
    def test_headless_linux_raises_without_opening(
        self,
        public_client: PublicClient,
        httpx_mock: HTTPXMock,
        browser: _FakeBrowser,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        for var in ("DISPLAY", "WAYLAND_DISPLAY", "BROWSER"):
            monkeypatch.delenv(var, raising=False)
        _add_oauth_response(httpx_mock)
        with pytest.raises(JunctureEnvironmentError, match="No graphical display"):
            public_client.redirect_to("jira", "project-123")
        assert browser.opened == []

    def test_wayland_session_is_enough(
        self,
        public_client: PublicClient,
        httpx_mock: HTTPXMock,
        browser: _FakeBrowser,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("DISPLAY")
        monkeypatch.setenv("WAYLAND_DISPLAY", "wayland-0")
        _add_oauth_response(httpx_mock)
        public_client.redirect_to("jira", "project-123")
        assert browser.opened == [AUTH_URI]

    def test_browser_refusing_raises(
        self, public_client: PublicClient, httpx_mock: HTTPXMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(webbrowser, "get", lambda: _FakeBrowser(opens=False))
        _add_oauth_response(httpx_mock)
        with pytest.raises(JunctureEnvironmentError):
            public_client.reauthorize("jira", "project-123", "react")

    def test_unsupported_framework(self, public_client: PublicClient, browser: _FakeBrowser) -> None:
        with pytest.raises(ValueError, match="Unsupported framework: svelte"):
            public_client.redirect_to("jira", "project-123", "svelte")  # type: ignore[arg-type]
        assert browser.opened == []

    def test_request_failure_skips_navigation(
        self, public_client: PublicClient, httpx_mock: HTTPXMock, browser: _FakeBrowser
    ) -> None:
        httpx_mock.add_response(method="POST", url=f"{API_URL}/initiate-oauth-flow", status_code=500, json={})
        with pytest.raises(JunctureRequestError):
            public_client.complete_integration("jira", "project-123")
        assert browser.opened == []
