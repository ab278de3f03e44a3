"""
Command line interface for lxdx.

Runs commands, uploads files and runs scripts inside LXD containers through
the local lxc client.
"""

import json
import shlex
import sys

import click
from rich.console import Console
from rich.table import Table

from .config import ConfigManager, setup_logging
from .connection import CONTAINER_TMPDIR, DEFAULT_REMOTE, Connection
from .errors import ConnectError, ValidationError
from .transport import LXDTransport

console = Console()


def _parse_env(values):
    """Turn ('A=1', 'B=2') into {'A': '1', 'B': '2'}."""
    env = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(
                f"expected NAME=VALUE, got '{item}'", param_hint="--env"
            )
        env[name] = value
    return env


def _fail(message, suggestions=()):
    click.echo(f"Error: {message}", err=True)
    for suggestion in suggestions:
        click.echo(f"  - {suggestion}", err=True)
    sys.exit(1)


def _report(result, as_json):
    """Print an action result and exit with a status matching it."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        if result.stdout:
            click.echo(result.stdout, nl=False)
        if result.stderr:
            click.echo(result.stderr, nl=False, err=True)
        if result.error:
            click.echo(f"Error: {result.error['msg']}", err=True)

    if result.error:
        sys.exit(1)
    if result.exit_code:
        # Shells only see the low byte; -32768 would wrap to 0
        sys.exit(result.exit_code if 0 < result.exit_code < 256 else 1)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v, -vv, -vvv)")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="Additional configuration file (highest precedence)",
)
@click.pass_context
def lxdx(ctx, version, verbose, config_file):
    """
    lxdx - run commands and copy files into LXD containers

    Targets are names from the configuration file, lxd:// URIs or plain
    container names:
        lxdx run web -- uname -a
        lxdx run lxd://lab/web-1 --env DEBUG=1 -- ./check.sh
        lxdx upload web ./site /var/www
        lxdx script web ./deploy.sh -- --fast
    """
    if version:
        from . import __version__

        click.echo(f"lxdx {__version__}")
        ctx.exit()

    config = ConfigManager(config_file)
    setup_logging(verbose, config)
    ctx.obj = {"config": config, "transport": LXDTransport()}

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


def _resolve_target(ctx, name):
    try:
        target = ctx.obj["config"].get_target(name)
    except ValueError as e:
        _fail(str(e))
    return target


@lxdx.command(name="targets")
@click.pass_context
def targets_cmd(ctx):
    """List configured targets."""
    targets = ctx.obj["config"].list_targets()
    if not targets:
        console.print("[yellow]No targets configured[/yellow]")
        return

    table = Table(title="Targets", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Container", style="green")
    table.add_column("Remote", style="blue")
    table.add_column("Tmpdir")
    for target in targets:
        table.add_row(
            target.name,
            target.host or "[red]missing[/red]",
            str(target.options.get("service-url", DEFAULT_REMOTE)),
            str(target.options.get("tmpdir", CONTAINER_TMPDIR)),
        )
    console.print(table)


@lxdx.command(name="check")
@click.argument("target")
@click.pass_context
def check_cmd(ctx, target):
    """Check that TARGET's remote and container exist."""
    target = _resolve_target(ctx, target)
    try:
        conn = Connection(target)
        conn.connect()
    except ValidationError as e:
        _fail(str(e))
    except ConnectError as e:
        _fail(e.message, e.suggestions)

    info = conn.container_info
    table = Table(title=target.safe_name, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Remote", conn.remote_name)
    table.add_row("Container", info.name)
    table.add_row("Status", info.status or "-")
    table.add_row("Type", info.type or "-")
    console.print(table)


@lxdx.command(name="run", context_settings={"ignore_unknown_options": True})
@click.argument("target")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--env", "env", multiple=True, help="Environment variable NAME=VALUE")
@click.option(
    "--stdin",
    "stdin_file",
    type=click.File("rb"),
    help="File to redirect to the command's stdin ('-' for this stdin)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def run_cmd(ctx, target, command, env, stdin_file, as_json):
    """Run COMMAND in TARGET through sh -c."""
    target = _resolve_target(ctx, target)
    stdin = stdin_file.read() if stdin_file else None
    try:
        result = ctx.obj["transport"].run_command(
            target, shlex.join(command), env_vars=_parse_env(env), stdin=stdin
        )
    except ValidationError as e:
        _fail(str(e))
    except OSError as e:
        _fail(f"Could not run lxc: {e}")
    _report(result, as_json)


@lxdx.command(name="upload")
@click.argument("target")
@click.argument("source", type=click.Path(exists=True))
@click.argument("destination")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def upload_cmd(ctx, target, source, destination, as_json):
    """Upload SOURCE (file or directory) to DESTINATION in TARGET."""
    target = _resolve_target(ctx, target)
    try:
        result = ctx.obj["transport"].upload(target, source, destination)
    except ValidationError as e:
        _fail(str(e))
    if not as_json and result.ok:
        click.echo(f"Uploaded {source} to {target.safe_name}:{destination}")
    _report(result, as_json)


@lxdx.command(name="script", context_settings={"ignore_unknown_options": True})
@click.argument("target")
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
@click.option("--interpreter", help="Interpreter to run the script with")
@click.option("--env", "env", multiple=True, help="Environment variable NAME=VALUE")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def script_cmd(ctx, target, script, arguments, interpreter, env, as_json):
    """Copy SCRIPT into TARGET and run it with ARGUMENTS."""
    target = _resolve_target(ctx, target)
    try:
        result = ctx.obj["transport"].run_script(
            target,
            script,
            arguments,
            env_vars=_parse_env(env),
            interpreter=interpreter,
        )
    except ValidationError as e:
        _fail(str(e))
    except OSError as e:
        _fail(f"Could not run lxc: {e}")
    _report(result, as_json)
