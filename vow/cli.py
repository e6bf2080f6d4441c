"""
CLI for Vow.

Provides the gate check used by git and Claude Code hooks, plus helpers
for supplying consent and inspecting or clearing the gate's records.
"""

import logging
import os
import sys
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Iterator, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vow import __version__
from vow.config import CHALLENGE_FILE, CONSENT_FILE, COOLDOWN_FILE, VowConfig
from vow.gate import run_check
from vow.hooks import HOOK_TYPE_CHOICES, HookInvocation, encode_passthrough
from vow.protocol import GateContext, read_cooldown, reset, supply_consent
from vow.rules import render_rules, resolve_rules
from vow.store import RecordStoreError


console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@contextmanager
def debug_log(path: Path) -> Iterator[None]:
    """Send everything the vow package logs to ``path`` for the duration."""
    pkg_logger = logging.getLogger("vow")
    try:
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        logger.debug("Cannot open debug log %s: %s", path, e)
        yield
        return
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    old_level, old_propagate = pkg_logger.level, pkg_logger.propagate
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG)
    # Keep debug chatter off stderr, which hooks read as the agent-facing message
    pkg_logger.propagate = False
    try:
        yield
    finally:
        pkg_logger.removeHandler(handler)
        pkg_logger.setLevel(old_level)
        pkg_logger.propagate = old_propagate
        handler.close()


def get_config(root: Optional[str] = None, quiet: bool = False) -> Optional[VowConfig]:
    """Load configuration from environment.

    Args:
        root: Explicit working-tree root (defaults to the git top-level)
        quiet: If True, return None instead of printing error and exiting.
               Used by hooks that should fail open.
    """
    try:
        return VowConfig.from_env(root)
    except ValueError as e:
        if quiet:
            logger.warning("Configuration error: %s", e)
            return None
        err_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)


def _read_stdin() -> Optional[str]:
    stream = click.get_text_stream("stdin")
    try:
        if stream.isatty():
            return None
        return stream.read()
    except (OSError, ValueError):
        return None


root_option = click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=str),
    help="Working-tree root (defaults to the git top-level)",
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(__version__, prog_name="vow")
def main(verbose: bool):
    """Vow - AI accountability gate for commits and turn stops."""
    setup_logging(verbose)


@main.command()
@click.option("--hook", is_flag=True, help="Called from a hook (JSON stdout, exit 2 to block)")
@click.option(
    "--hook-type",
    type=click.Choice(HOOK_TYPE_CHOICES, case_sensitive=False),
    help="Host hook event; implies --hook",
)
@click.option("--debug", is_flag=True, help="Append invocation details to .vow-debug.log")
@root_option
def check(hook: bool, hook_type: Optional[str], debug: bool, root: Optional[str]):
    """
    Check whether the agent has taken the vow.

    Without consent, prints the checklist with a fresh validation code and
    blocks (exit 1, or exit 2 in hook mode). With the matching consent,
    clears the records and allows.
    """
    in_hook = hook or bool(hook_type)
    stdin_text = _read_stdin() if in_hook else None
    invocation = HookInvocation.from_cli(hook=hook, hook_type=hook_type, stdin_text=stdin_text)

    config = get_config(root, quiet=in_hook)
    if config is None:
        response = encode_passthrough(invocation)
    else:
        log_ctx = debug_log(config.debug_log_path) if debug or config.debug else nullcontext()
        with log_ctx:
            logger.debug(
                "Hook Type: %s, Hook Mode: %s", invocation.hook_type.value, invocation.is_hook
            )
            logger.debug("STDIN: %s", stdin_text if stdin_text is not None else "-")
            logger.debug("CLAUDE_TOOL_INPUT: %s", os.getenv("CLAUDE_TOOL_INPUT", "undefined"))

            found = resolve_rules(config)
            ctx = GateContext.from_config(config)
            response = run_check(ctx, invocation, found.text if found else None)
            logger.debug("exit=%d", response.exit_code)

    if response.stdout is not None:
        click.echo(response.stdout)
    if response.stderr is not None:
        click.echo(response.stderr, err=True, nl=False)
    sys.exit(response.exit_code)


@main.command()
@click.argument("code")
@root_option
def consent(code: str, root: Optional[str]):
    """Write the validation CODE to the consent file."""
    config = get_config(root)
    ctx = GateContext.from_config(config)
    try:
        supply_consent(ctx, code)
    except RecordStoreError as e:
        err_console.print(f"[red]Error writing consent file:[/red] {escape(str(e))}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Consent provided with code: {escape(code)}")


@main.command()
@root_option
def rules(root: Optional[str]):
    """Show the checklist currently in effect (local AGENT_VOW.md or default)."""
    config = get_config(root)
    found = resolve_rules(config)
    if found is None:
        err_console.print("[red]No vow rules found[/red] (neither local nor default)")
        sys.exit(1)
    click.echo(render_rules(found.text))


@main.command()
@root_option
def status(root: Optional[str]):
    """Show the gate's records and the active rules source."""
    config = get_config(root)
    ctx = GateContext.from_config(config)
    found = resolve_rules(config)

    table = Table(title=f"Vow status ({escape(str(config.root))})")
    table.add_column("Record", style="cyan")
    table.add_column("Value")
    table.add_column("Note", style="dim")

    for label, name in (("Challenge", CHALLENGE_FILE), ("Consent", CONSENT_FILE)):
        try:
            value = ctx.store.read(name)
        except RecordStoreError as e:
            table.add_row(label, "[red]unreadable[/red]", escape(str(e)))
            continue
        table.add_row(label, escape(value.strip()) if value is not None else "-", name)

    stamp = read_cooldown(ctx)
    if stamp is None:
        table.add_row("Cooldown", "-", COOLDOWN_FILE)
    else:
        remaining = stamp + ctx.cooldown_ms - ctx.clock()
        note = f"{remaining} ms left" if remaining > 0 else "expired"
        table.add_row("Cooldown", str(stamp), note)

    table.add_row("Rules", escape(str(found.source)) if found else "[yellow]none[/yellow]", "")
    console.print(table)


@main.command(name="reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@root_option
def reset_cmd(yes: bool, root: Optional[str]):
    """Delete the challenge, consent and cooldown records."""
    config = get_config(root)
    if not yes and not click.confirm(f"Clear vow records in {config.root}?"):
        console.print("Cancelled")
        return
    ctx = GateContext.from_config(config)
    try:
        reset(ctx)
    except RecordStoreError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    console.print("[green]✓[/green] Vow records cleared")


if __name__ == "__main__":
    main()
