"""CLI entry point for HBAC."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich import print as rprint
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hbac.config import DEFAULT_CONFIG_TEMPLATE, HBACConfig, load_config
from hbac.errors import HBACError
from hbac.hbac import HBAC
from hbac.log import configure_logging

app = typer.Typer(
    name="hbac",
    help="Hybrid role + attribute based access control.",
)

config_app = typer.Typer(help="Manage HBAC configuration.")
app.add_typer(config_app, name="config")

# Global state
_config_path: str | None = None
_config: HBACConfig | None = None


def _get_config() -> HBACConfig:
    global _config
    if _config is None:
        try:
            _config = load_config(_config_path)
        except HBACError as e:
            rprint(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(1)
        configure_logging(_config.log_level, _config.log_format)
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to hbac.yaml / hbac.json")
    ] = None,
) -> None:
    """Global options."""
    global _config_path, _config
    _config_path = config
    _config = None


def _run(coro_factory) -> Any:
    """Initialize an HBAC instance and run one coroutine against it."""
    hbac = HBAC(config=_get_config())

    async def _go() -> Any:
        try:
            await hbac.initialize()
            return await coro_factory(hbac)
        finally:
            await hbac.close()

    try:
        return asyncio.run(_go())
    except HBACError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _parse_value(raw: str) -> Any:
    """Parse a CLI value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


# ── config ─────────────────────────────────────────────────────────


@config_app.command("init")
def config_init(
    path: str = typer.Argument("hbac.yaml", help="Where to write the starter config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a starter configuration file."""
    target = Path(path)
    if target.exists() and not force:
        rprint(f"[yellow]{target} already exists (use --force to overwrite)[/yellow]")
        raise typer.Exit(1)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


@config_app.command("validate")
def config_validate() -> None:
    """Load and validate the configuration, then print a summary."""
    cfg = _get_config()
    summary = (
        f"[dim]Version:[/dim]       {cfg.version}\n"
        f"[dim]Database:[/dim]      {cfg.database.type}\n"
        f"[dim]Cache:[/dim]         {'on' if cfg.cache.enabled else 'off'} (ttl {cfg.cache.ttl:g}s)\n"
        f"[dim]Default effect:[/dim] {cfg.policies.default_effect.value}\n"
        f"[dim]Evaluation:[/dim]    {cfg.policies.evaluation.value}\n"
        f"[dim]Roles:[/dim]         {len(cfg.roles)}\n"
        f"[dim]Attributes:[/dim]    {len(cfg.attributes)}\n"
        f"[dim]Policy rules:[/dim]  {len(cfg.policy_rules)}"
    )
    rprint(Panel(summary, title="Configuration OK", border_style="green"))


# ── listings ───────────────────────────────────────────────────────


@app.command()
def roles() -> None:
    """List configured roles."""
    cfg = _get_config()
    table = Table(title=f"Roles ({len(cfg.roles)})")
    table.add_column("Key", style="cyan")
    table.add_column("ID")
    table.add_column("Permissions", style="green")
    table.add_column("Description", style="dim")
    for key, role in cfg.roles.items():
        table.add_row(key, role.id, ", ".join(role.permissions), role.description or "-")
    rprint(table)


@app.command()
def attributes() -> None:
    """List configured attributes."""
    cfg = _get_config()
    table = Table(title=f"Attributes ({len(cfg.attributes)})")
    table.add_column("Key", style="cyan")
    table.add_column("ID")
    table.add_column("Type", style="green")
    table.add_column("Description", style="dim")
    for key, attr in cfg.attributes.items():
        table.add_row(key, attr.id, attr.type, attr.description or "-")
    rprint(table)


@app.command()
def rules() -> None:
    """List policy rules in evaluation order."""
    cfg = _get_config()
    table = Table(title=f"Policy rules ({cfg.policies.evaluation.value})")
    table.add_column("#", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Resource:Action")
    table.add_column("Condition", style="yellow")
    table.add_column("Effect")
    for i, rule in enumerate(cfg.policy_rules, 1):
        effect_style = "green" if rule.effect.value == "allow" else "red"
        table.add_row(
            str(i),
            rule.id,
            f"{rule.resource}:{rule.action}",
            json.dumps(rule.condition),
            f"[{effect_style}]{rule.effect.value}[/{effect_style}]",
        )
    rprint(table)


# ── decisions ──────────────────────────────────────────────────────


@app.command()
def check(
    user_id: str = typer.Argument(..., help="User identifier"),
    action: str = typer.Argument(..., help="Action, e.g. read"),
    resource: str = typer.Argument(..., help="Resource, e.g. posts"),
    context: str | None = typer.Option(None, "--context", help="JSON object of call context"),
) -> None:
    """Evaluate one access decision. Exits 1 on deny."""
    ctx: dict[str, Any] = {}
    if context:
        try:
            ctx = json.loads(context)
        except json.JSONDecodeError as e:
            rprint(f"[red]Error:[/red] --context is not valid JSON: {e}")
            raise typer.Exit(2)
        if not isinstance(ctx, dict):
            rprint("[red]Error:[/red] --context must be a JSON object")
            raise typer.Exit(2)

    allowed = _run(lambda hbac: hbac.can(user_id, action, resource, ctx))
    if allowed:
        rprint(f"[green]ALLOW[/green] {user_id} {action} {resource}")
    else:
        rprint(f"[red]DENY[/red] {user_id} {action} {resource}")
        raise typer.Exit(1)


@app.command()
def user(user_id: str = typer.Argument(..., help="User identifier")) -> None:
    """Show a user's roles and attributes."""

    async def _load(hbac: HBAC) -> tuple[list[str], dict[str, Any]]:
        return await asyncio.gather(hbac.get_user_roles(user_id), hbac.get_user_attributes(user_id))

    role_ids, attrs = _run(_load)
    table = Table(title=f"User {user_id}")
    table.add_column("Kind", style="cyan")
    table.add_column("Name")
    table.add_column("Value", style="green")
    for role_id in role_ids:
        table.add_row("role", role_id, "")
    for name, value in sorted(attrs.items()):
        table.add_row("attribute", name, json.dumps(value))
    if not role_ids and not attrs:
        rprint(f"[yellow]No assignments for '{user_id}'.[/yellow]")
        return
    rprint(table)


# ── mutations ──────────────────────────────────────────────────────


@app.command("assign-role")
def assign_role(
    user_id: str = typer.Argument(..., help="User identifier"),
    role_id: str = typer.Argument(..., help="Role ID, e.g. role_editor"),
) -> None:
    """Assign a role to a user."""
    _run(lambda hbac: hbac.assign_role(user_id, role_id))
    rprint(f"[green]Assigned[/green] {role_id} to {user_id}")


@app.command("remove-role")
def remove_role(
    user_id: str = typer.Argument(..., help="User identifier"),
    role_id: str = typer.Argument(..., help="Role ID"),
) -> None:
    """Remove a role from a user."""
    _run(lambda hbac: hbac.remove_role(user_id, role_id))
    rprint(f"[green]Removed[/green] {role_id} from {user_id}")


@app.command("set-attribute")
def set_attribute(
    user_id: str = typer.Argument(..., help="User identifier"),
    attribute_id: str = typer.Argument(..., help="Attribute ID, e.g. attr_department"),
    value: str = typer.Argument(..., help="Value (parsed as JSON, else taken as a string)"),
) -> None:
    """Set an attribute value for a user."""
    parsed = _parse_value(value)
    _run(lambda hbac: hbac.set_attribute(user_id, attribute_id, parsed))
    rprint(f"[green]Set[/green] {attribute_id}={json.dumps(parsed)} for {user_id}")
