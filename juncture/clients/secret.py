"""Secret (server-side) Juncture client: connection management and Jira operations."""

from collections.abc import Mapping
from typing import Any

from juncture.clients.base import JunctureClient, load_config
from juncture.exceptions import JunctureConfigurationError, JunctureRequestError, ReauthorizationRequiredError
from juncture.models import (
    AccessToken,
    ActiveSprints,
    BoardPage,
    ConnectionCredentials,
    ConnectionStatus,
    CreatedTicket,
    IssueDetails,
    OperationResult,
    ProjectList,
    ProviderType,
    SecretClientConfig,
    SelectedProject,
    SprintPage,
    TicketPage,
)
from juncture.settings import JunctureSettings

SECRET_KEY_HEADER = "X-Juncture-Secret-Key"


def _connection_params(external_id: str, provider: ProviderType) -> dict[str, str]:
    return {"external_id": external_id, "provider": provider}


def _page_params(max_results: int | None, start_at: int | None) -> dict[str, int | None]:
    return {"maxResults": max_results, "startAt": start_at}


class GeneralApi:
    """Connection validity and credential retrieval, available as ``SecretClient.general``."""

    def __init__(self, client: "SecretClient") -> None:
        self._client = client

    def check_connection_validity(self, external_id: str, provider: ProviderType = "jira") -> ConnectionStatus:
        """Report whether a connection exists for ``external_id`` and whether it has gone invalid."""
        return self._client._fetch(
            ConnectionStatus,
            "GET",
            "/check-connection-validity",
            "Failed to check connection validity",
            params=_connection_params(external_id, provider),
        )

    def get_connection_credentials(self, external_id: str, provider: ProviderType = "jira") -> ConnectionCredentials:
        """Return the connection's refresh token and expiry.

        Prefer :meth:`get_access_token` and let Juncture manage refresh tokens.
        """
        return self._client._fetch(
            ConnectionCredentials,
            "GET",
            "/get-connection-credentials",
            "Failed to get connection credentials",
            params=_connection_params(external_id, provider),
        )

    def get_access_token(self, external_id: str, provider: ProviderType = "jira") -> AccessToken:
        """Return a short-lived access token for calling the provider directly.

        Call this right before talking to the provider; tokens can expire at any
        time. Raises :class:`ReauthorizationRequiredError` when Juncture answers
        403 and flags that the user has to go through the OAuth flow again.
        """
        try:
            return self._client._fetch(
                AccessToken,
                "GET",
                "/get-access-token",
                "Failed to get access token",
                params=_connection_params(external_id, provider),
            )
        except JunctureRequestError as exc:
            if exc.status_code == 403 and exc.payload.get("needs_reauthorization"):
                raise ReauthorizationRequiredError(
                    f"Reauthorization required: {exc.payload.get('error', '')}",
                    status_code=exc.status_code,
                    payload=exc.payload,
                ) from exc
            raise


class JiraApi:
    """Jira operations, available as ``SecretClient.jira``.

    Unless a project or issue is named explicitly, operations act on the project
    currently selected on the Juncture side (see :meth:`select_project`).
    """

    def __init__(self, client: "SecretClient") -> None:
        self._client = client

    # -- projects -----------------------------------------------------------

    def get_projects(self) -> ProjectList:
        return self._client._fetch(ProjectList, "GET", "/get-all-projects", "Failed to get Jira projects")

    def select_project(self, project_id: str) -> OperationResult:
        return self._client._fetch(
            OperationResult,
            "POST",
            "/select-project",
            "Failed to select Jira project",
            json={"project_id": project_id},
        )

    def get_selected_project_id(self) -> SelectedProject:
        return self._client._fetch(
            SelectedProject, "GET", "/get-selected-project-id", "Failed to get selected Jira project ID"
        )

    # -- tickets ------------------------------------------------------------

    def get_tickets(self, max_results: int | None = None, start_at: int | None = None) -> TicketPage:
        return self._client._fetch(
            TicketPage,
            "GET",
            "/get-tickets-for-project",
            "Failed to get Jira tickets",
            params=_page_params(max_results, start_at),
        )

    def get_tickets_for_sprint(
        self,
        sprint_id: str,
        max_results: int | None = None,
        start_at: int | None = None,
    ) -> TicketPage:
        return self._client._fetch(
            TicketPage,
            "GET",
            "/get-tickets-for-sprint",
            "Failed to get Jira tickets for sprint",
            params={"sprint_id": sprint_id, **_page_params(max_results, start_at)},
        )

    def get_issue(self, issue_key: str) -> IssueDetails:
        """Fetch one issue with its extra fields, comments and attachments."""
        return self._client._fetch(
            IssueDetails,
            "GET",
            "/get-issue-details",
            "Failed to get Jira issue",
            params={"issue_key": issue_key},
        )

    def create_ticket(
        self,
        project_key: str,
        issue_type: str,
        summary: str,
        description: str | None = None,
        priority: str | None = None,
        assignee: str | None = None,
        fields: Mapping[str, Any] | None = None,
    ) -> CreatedTicket:
        """Create a ticket. ``fields`` carries provider-defined extras (custom fields, labels...)."""
        return self._client._fetch(
            CreatedTicket,
            "POST",
            "/create-ticket",
            "Failed to create Jira ticket",
            json={
                "project_key": project_key,
                "issue_type": issue_type,
                "summary": summary,
                "description": description,
                "priority": priority,
                "assignee": assignee,
                "fields": dict(fields) if fields is not None else None,
            },
        )

    def edit_issue(self, issue_key: str, fields: Mapping[str, Any]) -> OperationResult:
        return self._client._fetch(
            OperationResult,
            "PUT",
            "/edit-issue",
            "Failed to edit Jira issue",
            json={"issue_key": issue_key, "fields": dict(fields)},
        )

    def delete_issue(self, issue_key: str) -> OperationResult:
        return self._client._fetch(
            OperationResult,
            "DELETE",
            "/delete-issue",
            "Failed to delete Jira issue",
            params={"issue_key": issue_key},
        )

    # -- sprints ------------------------------------------------------------

    def get_sprints(self, max_results: int | None = None, start_at: int | None = None) -> SprintPage:
        return self._client._fetch(
            SprintPage,
            "GET",
            "/get-all-sprints-for-project",
            "Failed to get Jira sprints",
            params=_page_params(max_results, start_at),
        )

    def get_active_sprints(self) -> ActiveSprints:
        return self._client._fetch(
            ActiveSprints, "GET", "/get-active-sprints-for-project", "Failed to get active Jira sprints"
        )

    # -- boards -------------------------------------------------------------

    def get_boards(self, max_results: int | None = None, start_at: int | None = None) -> BoardPage:
        return self._client._fetch(
            BoardPage,
            "GET",
            "/get-boards-for-project",
            "Failed to get Jira boards",
            params=_page_params(max_results, start_at),
        )


class SecretClient(JunctureClient):
    """Client for Juncture's secret-key routes. Keep it on the server.

    Both ``juncture_api_url`` and ``juncture_secret_key`` are required. The key is
    sent as ``X-Juncture-Secret-Key`` and is masked in the config's repr.

    .. code-block:: python

        client = SecretClient({"juncture_api_url": "https://api.juncture.com", "juncture_secret_key": "sk"})
        status = client.general.check_connection_validity("project-123", "jira")
        projects = client.jira.get_projects()
    """

    def __init__(self, config: SecretClientConfig | Mapping[str, Any]) -> None:
        cfg = load_config(SecretClientConfig, config)
        if not cfg.juncture_api_url:
            raise JunctureConfigurationError("juncture_api_url is required")
        if not cfg.juncture_secret_key or not cfg.juncture_secret_key.get_secret_value():
            raise JunctureConfigurationError("juncture_secret_key is required")
        super().__init__(
            cfg,
            cfg.juncture_api_url,
            {SECRET_KEY_HEADER: cfg.juncture_secret_key.get_secret_value()},
        )
        self.general = GeneralApi(self)
        self.jira = JiraApi(self)

    @classmethod
    def from_settings(cls, settings: JunctureSettings) -> "SecretClient":
        return cls(SecretClientConfig(juncture_api_url=settings.api_url, juncture_secret_key=settings.secret_key))

    def get_config(self) -> SecretClientConfig:
        return super().get_config()
