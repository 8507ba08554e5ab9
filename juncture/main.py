"""Juncture CLI — all commands."""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Annotated, Any

import tomlkit
import typer
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from juncture.clients.public import PublicClient
from juncture.clients.secret import SecretClient
from juncture.exceptions import JunctureError, ReauthorizationRequiredError
from juncture.models import JiraTicket
from juncture.settings import CONFIG_PATH, _list_profiles, get_settings

app = typer.Typer(help="juncture: talk to a Juncture deployment from the shell", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/juncture/config.toml"),
]
ProviderOpt = Annotated[str, typer.Option("--provider", help="Provider the connection belongs to")]
MaxResultsOpt = Annotated[int | None, typer.Option("--max-results", "-n", min=1, help="Page size")]
StartAtOpt = Annotated[int | None, typer.Option("--start-at", min=0, help="Offset of the first result")]

_UNSET = "[dim](not set)[/dim]"


# ---------------------------------------------------------------------------
# Client factories
# ---------------------------------------------------------------------------


def get_public_client(profile: str | None = None) -> PublicClient:
    return PublicClient.from_settings(get_settings(profile=profile))


def get_secret_client(profile: str | None = None) -> SecretClient:
    return SecretClient.from_settings(get_settings(profile=profile))


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except ReauthorizationRequiredError as exc:
        rprint(f"[yellow]{escape(str(exc))}[/yellow]")
        rprint("  Run [bold]juncture authorize <external-id>[/bold] to reconnect.")
        raise typer.Exit(1) from exc
    except JunctureError as exc:
        rprint(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _fmt_time(value: datetime | None) -> str:
    return value.isoformat() if value else "—"


def _text(value: Any, fallback: str = "—") -> str:
    """Render a remote value as a table cell, escaping any rich markup in it.

    Provider objects such as ``{"name": "Done"}`` or a Jira user show their
    display name; other structured values fall back.
    """
    if isinstance(value, Mapping):
        value = value.get("displayName") or value.get("name") or value.get("value")
    if value is None or value == "" or isinstance(value, (Mapping, list)):
        return fallback
    return escape(str(value))


def _tickets_table(title: str, tickets: list[JiraTicket]) -> Table:
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Assignee")
    table.add_column("Summary")

    for t in tickets:
        table.add_row(
            _text(t.key or t.id),
            _text(t.status),
            _text(t.priority),
            _text(t.assignee, "Unassigned"),
            _text(t.summary, ""),
        )
    return table


# ---------------------------------------------------------------------------
# Connection commands
# ---------------------------------------------------------------------------


@app.command("authorize")
def authorize(
    external_id: Annotated[str, typer.Argument(help="Your identifier for the connection")],
    profile: ProfileOpt = None,
    provider: ProviderOpt = "jira",
    open_browser: Annotated[
        bool, typer.Option("--open/--no-open", help="Open the authorization page in a browser")
    ] = True,
) -> None:
    """Start an OAuth flow and print (or open) the authorization URL."""
    with _reporting_errors(), get_public_client(profile) as client:
        if open_browser:
            auth = client.redirect_to(provider, external_id, "vanilla")  # type: ignore[arg-type]
            rprint(f"[green]✓[/green] Opened authorization page for {escape(external_id)}")
        else:
            auth = client.get_authorization_url(provider, external_id)  # type: ignore[arg-type]
        typer.echo(auth.authorization_uri)


@app.command("check")
def check(
    external_id: Annotated[str, typer.Argument(help="Your identifier for the connection")],
    profile: ProfileOpt = None,
    provider: ProviderOpt = "jira",
) -> None:
    """Show whether a connection exists and is still valid."""
    with _reporting_errors(), get_secret_client(profile) as client:
        status = client.general.check_connection_validity(external_id, provider)  # type: ignore[arg-type]

    table = Table(title=escape(f"Connection {external_id} ({provider})"))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Exists", "yes" if status.exists else "no")
    table.add_row("Invalid", "[red]yes[/red]" if status.is_invalid else "no")
    table.add_row("Expires", _fmt_time(status.expires_at))

    rprint(table)


@app.command("token")
def token(
    external_id: Annotated[str, typer.Argument(help="Your identifier for the connection")],
    profile: ProfileOpt = None,
    provider: ProviderOpt = "jira",
) -> None:
    """Print a fresh provider access token (no trailing newline)."""
    with _reporting_errors(), get_secret_client(profile) as client:
        access = client.general.get_access_token(external_id, provider)  # type: ignore[arg-type]
    # No trailing newline — designed for shell substitution: $(juncture token acme)
    typer.echo(access.access_token or "", nl=False)


@app.command("credentials")
def credentials(
    external_id: Annotated[str, typer.Argument(help="Your identifier for the connection")],
    profile: ProfileOpt = None,
    provider: ProviderOpt = "jira",
) -> None:
    """Show refresh-token expiry for a connection (the token itself is masked)."""
    with _reporting_errors(), get_secret_client(profile) as client:
        creds = client.general.get_connection_credentials(external_id, provider)  # type: ignore[arg-type]

    table = Table(title=escape(f"Credentials {external_id} ({provider})"))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Refresh token", _mask(creds.refresh_token))
    table.add_row("Expires", _fmt_time(creds.expires_at))
    table.add_row("Invalid", "[red]yes[/red]" if creds.is_invalid else "no")

    rprint(table)


# ---------------------------------------------------------------------------
# Jira commands
# ---------------------------------------------------------------------------


@app.command("projects")
def projects(profile: ProfileOpt = None) -> None:
    """List Jira projects visible to the connection."""
    with _reporting_errors(), get_secret_client(profile) as client:
        result = client.jira.get_projects()
        selected = client.jira.get_selected_project_id().project_id

    table = Table(title="Jira Projects")
    table.add_column("", width=1)
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("ID", style="dim")

    for p in result.projects:
        table.add_row("*" if p.id == selected else "", _text(p.key), _text(p.name, ""), _text(p.id, ""))

    rprint(table)


@app.command("select-project")
def select_project(
    project_id: Annotated[str, typer.Argument(help="Jira project ID")],
    profile: ProfileOpt = None,
) -> None:
    """Select the Jira project that ticket, sprint and board commands act on."""
    with _reporting_errors(), get_secret_client(profile) as client:
        result = client.jira.select_project(project_id)
    if not result.success:
        rprint(f"[red]Juncture did not select project {escape(project_id)}[/red]")
        raise typer.Exit(1)
    rprint(f"[green]✓[/green] Selected project {escape(project_id)}")


@app.command("selected-project")
def selected_project(profile: ProfileOpt = None) -> None:
    """Print the currently selected Jira project ID."""
    with _reporting_errors(), get_secret_client(profile) as client:
        selected = client.jira.get_selected_project_id()
    typer.echo(selected.project_id or "")


@app.command("tickets")
def tickets(
    profile: ProfileOpt = None,
    sprint: Annotated[str | None, typer.Option("--sprint", "-s", help="Only tickets in this sprint")] = None,
    max_results: MaxResultsOpt = None,
    start_at: StartAtOpt = None,
) -> None:
    """List tickets for the selected project (or one sprint)."""
    with _reporting_errors(), get_secret_client(profile) as client:
        if sprint:
            page = client.jira.get_tickets_for_sprint(sprint, max_results=max_results, start_at=start_at)
        else:
            page = client.jira.get_tickets(max_results=max_results, start_at=start_at)

    title = escape(f"Sprint {sprint} Tickets") if sprint else "Tickets"
    rprint(_tickets_table(title, page.tickets))
    rprint(f"[dim]{page.start_at + len(page.tickets)} of {page.total} (page size {page.max_results})[/dim]")


@app.command("issue")
def issue(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. PROJ-123)")],
    profile: ProfileOpt = None,
) -> None:
    """Show full details for an issue."""
    with _reporting_errors(), get_secret_client(profile) as client:
        details = client.jira.get_issue(issue_key)

    found = details.issue
    if found is None:
        rprint(f"[red]Issue '{escape(issue_key)}' not found[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{_text(found.key or issue_key)}: {_text(found.summary, '')}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Status", _text(found.status))
    table.add_row("Priority", _text(found.priority))
    table.add_row("Assignee", _text(found.assignee, "Unassigned"))
    table.add_row("Reporter", _text(found.reporter))
    table.add_row("Created", _fmt_time(found.created_at))
    table.add_row("Updated", _fmt_time(found.updated_at))
    table.add_row("Description", _text(found.description, "_No description provided._"))
    table.add_row("Attachments", ", ".join(_text(a.filename or a.id, "?") for a in found.attachments) or "none")

    rprint(table)
    for comment in found.comments:
        rprint(f"[bold]{_text(comment.author, 'unknown')}[/bold] {_fmt_time(comment.created)}")
        rprint(f"  {_text(comment.body, '')}")


@app.command("sprints")
def sprints(
    profile: ProfileOpt = None,
    active: Annotated[bool, typer.Option("--active", "-a", help="Only active sprints")] = False,
    max_results: MaxResultsOpt = None,
    start_at: StartAtOpt = None,
) -> None:
    """List sprints for the selected project."""
    with _reporting_errors(), get_secret_client(profile) as client:
        if active:
            items = client.jira.get_active_sprints().sprints
        else:
            items = client.jira.get_sprints(max_results=max_results, start_at=start_at).sprints

    table = Table(title="Active Sprints" if active else "Sprints")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Start")
    table.add_column("End")

    for s in items:
        table.add_row(_text(s.id), _text(s.name, ""), _text(s.state), _fmt_time(s.start_date), _fmt_time(s.end_date))

    rprint(table)


@app.command("boards")
def boards(
    profile: ProfileOpt = None,
    max_results: MaxResultsOpt = None,
    start_at: StartAtOpt = None,
) -> None:
    """List boards for the selected project."""
    with _reporting_errors(), get_secret_client(profile) as client:
        page = client.jira.get_boards(max_results=max_results, start_at=start_at)

    table = Table(title="Boards")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Project", style="dim")

    for b in page.boards:
        project = b.location.project_name if b.location else None
        table.add_row(_text(b.id), _text(b.name, ""), _text(b.type), _text(project))

    rprint(table)


# ---------------------------------------------------------------------------
# Configuration commands
# ---------------------------------------------------------------------------


def _mask(val: str | None) -> str:
    if val is None:
        return _UNSET
    if len(val) <= 5:
        return "***"
    return escape(f"...{val[-5:]}")


@app.command("set-default")
def set_default(
    profile: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Use PROFILE whenever neither --profile nor JUNCTURE_PROFILE picks one."""
    if CONFIG_PATH.exists():
        doc = tomlkit.parse(CONFIG_PATH.read_text())
        known = _list_profiles(doc)
        if profile not in known:
            message = f"No [{profile}] profile in {CONFIG_PATH} (defined: {', '.join(known) or 'none'})"
            rprint(f"[red]{escape(message)}[/red]")
            raise typer.Exit(1)
    else:
        doc = tomlkit.document()

    doc["default_profile"] = profile
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f"[green]✓[/green] Default profile is now {escape(profile)} ({CONFIG_PATH})")


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks keys)."""
    with _reporting_errors():
        settings = get_settings(profile=profile)

    table = Table(title="Juncture Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_profile", escape(settings.default_profile) if settings.default_profile else _UNSET)
    table.add_row("api_url", escape(settings.api_url) if settings.api_url else _UNSET)
    table.add_row("public_key", _mask(settings.public_key))
    table.add_row("secret_key", _mask(settings.secret_key.get_secret_value() if settings.secret_key else None))

    rprint(table)
