"""
wishmatch CLI

Command-line front end over a YAML action catalog. Usage statistics,
recency ordering and the active context persist between runs in a
sidecar state file.

Usage::

    wishmatch query "set"              # ranked matches for a fragment
    wishmatch invoke "set"             # run the best match
    wishmatch context add editor       # change the active context
    wishmatch path /users/42           # apply path rules from the catalog
    wishmatch stats                    # engine statistics
"""

import logging
from pathlib import Path

import click

from wishmatch.client import Wishmatch
from wishmatch.core.config import WishmatchConfig
from wishmatch.core.formatter import ActionFormatter
from wishmatch.core.store import StateStore, load_catalog
from wishmatch.exceptions import WishmatchError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: WishmatchConfig, verbose: bool) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------

def _launch(target: str, new_surface: bool) -> None:
    click.launch(target)


class Session:
    """
    Engine loaded from the catalog plus the saved state for one command.

    The catalog is registered on every run. Catalog actions a previous run
    deregistered (through path rules) are listed under ``deregistered`` in
    the state file and removed again after loading.
    """

    def __init__(self, config: WishmatchConfig, catalog_path: Path,
                 state_dir: Path, catalog_required: bool):
        self.engine = Wishmatch(config, navigator=_launch)
        self.store = StateStore(config.get_state_path(state_dir))
        self.catalog_ids: list = []

        if catalog_path.exists() or catalog_required:
            catalog = load_catalog(catalog_path)
            self.catalog_ids = [action.id for action in self.engine.register_batch(catalog.specs)]
            self.engine.add_path_rule(catalog.path_rules)

        saved = self.store.load()
        self.engine.restore(saved, merge=True)
        for action_id in saved.get("deregistered", []):
            self.engine.deregister(action_id)

    def save(self) -> None:
        snapshot = self.engine.snapshot() or {}
        snapshot["deregistered"] = sorted(set(self.catalog_ids) - set(snapshot.get("actions", {})))
        self.store.save(snapshot)


def _session(ctx: click.Context) -> Session:
    obj = ctx.obj
    try:
        return Session(obj["config"], obj["catalog"], obj["state_dir"], obj["catalog_required"])
    except WishmatchError as exc:
        raise click.ClickException(str(exc))


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="wishmatch")
@click.option("--catalog", type=click.Path(dir_okay=False), default=None,
              help="Action catalog (default: ./wishes.yaml or $WISHMATCH_CATALOG).")
@click.option("--state-dir", type=click.Path(file_okay=False), default=None,
              help="Directory for saved state (default: ./.wishmatch).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, catalog: str | None, state_dir: str | None, verbose: bool):
    """wishmatch — fuzzy command matching with recency and contexts."""
    config = WishmatchConfig.from_env()
    try:
        config.validate()
    except WishmatchError as exc:
        raise click.ClickException(str(exc))
    _configure_logging(config, verbose)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["catalog"] = Path(catalog) if catalog else config.get_catalog_path(Path.cwd())
    ctx.obj["catalog_required"] = catalog is not None
    ctx.obj["state_dir"] = Path(state_dir) if state_dir else Path.cwd() / config.state_dir


# ---------------------------------------------------------------------------
# wishmatch query
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("fragment", default="")
@click.option("-n", "--max-results", type=int, default=None,
              help="Maximum number of results (0 = all).")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("--explain", is_flag=True, help="Show the tier that placed each result.")
@click.pass_context
def query(ctx: click.Context, fragment: str, max_results: int | None, fmt: str, explain: bool):
    """List the actions matching FRAGMENT, best first."""
    session = _session(ctx)
    results = session.engine.rank_breakdown(fragment)

    limit = max_results if max_results is not None else ctx.obj["config"].max_results
    if limit:
        results = results[:limit]

    formatter = ActionFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(results))
    elif fmt == "compact":
        click.echo(formatter.format_compact(results))
    else:
        click.echo(formatter.format_console(results, fragment=fragment, explain=explain))


# ---------------------------------------------------------------------------
# wishmatch invoke
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("fragment", default="")
@click.option("--id", "action_id", default=None,
              help="Invoke this action instead of the best match.")
@click.pass_context
def invoke(ctx: click.Context, fragment: str, action_id: str | None):
    """Invoke the best match for FRAGMENT and remember the choice."""
    session = _session(ctx)
    action = session.engine.invoke(action_id, fragment)
    if action is None:
        raise click.ClickException(f"Nothing to invoke for {fragment!r}.")
    session.save()
    click.echo(f"Invoked {action.primary_trigger} [{action.id}]")


# ---------------------------------------------------------------------------
# wishmatch list
# ---------------------------------------------------------------------------

@cli.command(name="list")
@click.option("-c", "--context", "labels", multiple=True,
              help="List what is visible in this context (repeatable).")
@click.pass_context
def list_actions(ctx: click.Context, labels: tuple):
    """List the actions visible in the active context (or in --context)."""
    session = _session(ctx)
    actions = session.engine.get_actions_in_context(list(labels) or session.engine.context())
    if not actions:
        click.echo("No wishes registered.")
        return
    for action in actions:
        click.echo(f"{action.id}\t{action.primary_trigger}\t{action.total_invocations}x")


# ---------------------------------------------------------------------------
# wishmatch context
# ---------------------------------------------------------------------------

@cli.group()
def context():
    """Show or change the active context."""


def _change_context(ctx: click.Context, change) -> None:
    session = _session(ctx)
    labels = change(session.engine)
    session.save()
    click.echo(" ".join(labels))


@context.command(name="show")
@click.pass_context
def context_show(ctx: click.Context):
    """Print the active context."""
    click.echo(" ".join(_session(ctx).engine.context()))


@context.command(name="set")
@click.argument("labels", nargs=-1, required=True)
@click.pass_context
def context_set(ctx: click.Context, labels: tuple):
    """Replace the active context with LABELS."""
    _change_context(ctx, lambda engine: engine.set_context(list(labels)))


@context.command(name="add")
@click.argument("labels", nargs=-1, required=True)
@click.pass_context
def context_add(ctx: click.Context, labels: tuple):
    """Add LABELS to the active context."""
    _change_context(ctx, lambda engine: engine.add_context(list(labels)))


@context.command(name="remove")
@click.argument("labels", nargs=-1, required=True)
@click.pass_context
def context_remove(ctx: click.Context, labels: tuple):
    """Remove LABELS from the active context."""
    _change_context(ctx, lambda engine: engine.remove_context(list(labels)))


@context.command(name="revert")
@click.pass_context
def context_revert(ctx: click.Context):
    """Switch back to the previous context."""
    _change_context(ctx, lambda engine: engine.revert_context())


@context.command(name="reset")
@click.pass_context
def context_reset(ctx: click.Context):
    """Return to the universal context."""
    _change_context(ctx, lambda engine: engine.reset_context_to_default())


# ---------------------------------------------------------------------------
# wishmatch path
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("path")
@click.option("--keep-actions", is_flag=True,
              help="Do not deregister actions scoped to removed contexts.")
@click.pass_context
def path(ctx: click.Context, path: str, keep_actions: bool):
    """Apply the catalog's path rules for application PATH."""
    _change_context(
        ctx, lambda engine: engine.resolve_path_context(path, suppress_deregistration=keep_actions)
    )


# ---------------------------------------------------------------------------
# wishmatch stats / forget
# ---------------------------------------------------------------------------

@cli.command()
@click.pass_context
def stats(ctx: click.Context):
    """Show engine statistics."""
    session = _session(ctx)
    health = session.engine.health()
    click.echo("─" * 50)
    click.echo("  WISHMATCH — Engine Statistics")
    click.echo("─" * 50)
    saved = "" if session.store.exists() else " (not saved yet)"
    click.echo(f"  State file        {session.store.path}{saved}")
    click.echo(f"  Actions           {health['actions']:>8,}")
    click.echo(f"  Recorded words    {health['recorded_fragments']:>8,}")
    click.echo(f"  Path rules        {health['path_rules']:>8,}")
    click.echo(f"  Active context    {' '.join(health['active_context'])}")
    click.echo("─" * 50)


@cli.command()
@click.pass_context
def forget(ctx: click.Context):
    """Delete the saved state (usage counts, recency, context)."""
    store = StateStore(ctx.obj["config"].get_state_path(ctx.obj["state_dir"]))
    if store.clear():
        click.echo(f"Removed {store.path}")
    else:
        click.echo("No saved state.")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
