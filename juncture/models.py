"""Shared pydantic models — the typed surface between the clients and callers.

Field names are snake_case, matching the Juncture wire format. Every model also
carries camelCase aliases, so ``model_dump(by_alias=True)`` yields the shape
the Juncture JavaScript SDK exposes, and camelCase keys are accepted on input.
"""

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, SecretStr, model_validator
from pydantic.alias_generators import to_camel

ProviderType = Literal["jira"]
SupportedFramework = Literal["nextjs", "react", "vue", "angular", "vanilla"]

SUPPORTED_FRAMEWORKS: tuple[str, ...] = ("nextjs", "react", "vue", "angular", "vanilla")

DEFAULT_MAX_RESULTS = 50

_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def _parse_timestamp(value: Any) -> Any:
    # Jira sends offsets as +0000
    if isinstance(value, str):
        return _COMPACT_OFFSET.sub(r"\1:\2", value)
    return value


Timestamp = Annotated[datetime, BeforeValidator(_parse_timestamp)]

# Jira sends some text fields as objects ({"name": "Done"}, an Atlassian
# document) depending on the endpoint; those shapes are kept as they arrive.
ProviderValue = str | dict[str, Any] | list[Any]


class JunctureModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null on the wire means "not supplied"; let field defaults apply
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None}
        return data


class ProviderRecord(JunctureModel):
    """A mirror of a provider-side object. Unknown provider fields are kept as extras."""

    model_config = ConfigDict(extra="allow")


# ---------------------------------------------------------------------------
# Client configuration
# ---------------------------------------------------------------------------


class PublicClientConfig(JunctureModel):
    juncture_api_url: str | None = None
    juncture_public_key: str | None = None  # cloud mode only


class SecretClientConfig(JunctureModel):
    juncture_api_url: str | None = None
    juncture_secret_key: SecretStr | None = None


# ---------------------------------------------------------------------------
# OAuth + connection management
# ---------------------------------------------------------------------------


class AuthorizationUrl(JunctureModel):
    model_config = ConfigDict(extra="allow")

    authorization_uri: str


class ConnectionStatus(JunctureModel):
    exists: bool = False
    is_invalid: bool = False
    expires_at: Timestamp | None = None


class ConnectionCredentials(JunctureModel):
    refresh_token: str | None = None
    expires_at: Timestamp | None = None
    is_invalid: bool = False


class AccessToken(JunctureModel):
    access_token: str | None = None
    expires_at: Timestamp | None = None


# ---------------------------------------------------------------------------
# Jira records
# ---------------------------------------------------------------------------


class JiraProject(ProviderRecord):
    id: str | None = None
    key: str | None = None
    name: ProviderValue | None = None
    description: ProviderValue | None = None
    avatar_url: str | None = None


class JiraTicket(ProviderRecord):
    id: str | None = None
    key: str | None = None  # PROJ-123
    summary: ProviderValue | None = None
    description: ProviderValue | None = None
    status: ProviderValue | None = None
    priority: ProviderValue | None = None
    assignee: ProviderValue | None = None
    reporter: ProviderValue | None = None
    created_at: Timestamp | None = None
    updated_at: Timestamp | None = None


class JiraComment(ProviderRecord):
    id: str | None = None
    author: ProviderValue | None = None
    body: ProviderValue | None = None
    created: Timestamp | None = None


class JiraAttachment(ProviderRecord):
    id: str | None = None
    filename: str | None = None
    url: str | None = None
    size: int = 0


class DetailedJiraIssue(JiraTicket):
    fields: dict[str, Any] = {}
    comments: list[JiraComment] = []
    attachments: list[JiraAttachment] = []


class JiraSprint(ProviderRecord):
    id: str | None = None
    name: ProviderValue | None = None
    state: ProviderValue | None = None  # active | closed | future
    start_date: Timestamp | None = None
    end_date: Timestamp | None = None
    goal: ProviderValue | None = None


class BoardLocation(ProviderRecord):
    project_id: str | None = None
    project_name: str | None = None


class JiraBoard(ProviderRecord):
    id: str | None = None
    name: ProviderValue | None = None
    type: ProviderValue | None = None  # scrum | kanban
    location: BoardLocation | None = None


# ---------------------------------------------------------------------------
# Jira responses
# ---------------------------------------------------------------------------


class Page(JunctureModel):
    """Counters shared by every paginated Jira listing."""

    total: int = 0
    start_at: int = 0
    max_results: int = DEFAULT_MAX_RESULTS


class ProjectList(JunctureModel):
    projects: list[JiraProject] = []


class SelectedProject(JunctureModel):
    project_id: str | None = None


class OperationResult(JunctureModel):
    # Lenient: a non-failing response without a flag counts as success.
    success: bool = True


class CreatedTicket(OperationResult):
    ticket_key: str | None = None
    ticket_id: str | None = None


class IssueDetails(JunctureModel):
    issue: DetailedJiraIssue | None = None


class TicketPage(Page):
    tickets: list[JiraTicket] = []


class SprintPage(Page):
    sprints: list[JiraSprint] = []


class ActiveSprints(JunctureModel):
    sprints: list[JiraSprint] = []


class BoardPage(Page):
    boards: list[JiraBoard] = []
