"""
Thin wrapper around the ``lxc`` command line client.

Every interaction with a container goes through run_lxc: the binary is
spawned with an explicit argument list (never through a shell) and its
output is captured as bytes. run_lxc_json adds ``--format json`` and turns
the output into Python data, and the parse_* helpers validate that data
into typed records at this boundary.
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .errors import LxcCommandError, OutputParseError
from .models import ContainerInfo, RemoteInfo

logger = logging.getLogger(__name__)

LXC_BINARY = "lxc"

# Exit status reported when the process could not report one (e.g. killed by a signal)
NO_EXIT_STATUS = -32768


@dataclass
class CommandOutcome:
    """Raw result of one lxc invocation."""

    stdout: bytes
    stderr: bytes
    returncode: Optional[int]


def _stdin_bytes(stdin: Any) -> bytes:
    """Normalise a stdin source (bytes, str or readable object) to bytes."""
    if hasattr(stdin, "read"):
        stdin = stdin.read()
    if isinstance(stdin, str):
        return stdin.encode("utf-8")
    return bytes(stdin)


def run_lxc(
    subcommands: Sequence[str],
    command_options: Optional[Sequence[str]] = None,
    stdin: Any = None,
) -> CommandOutcome:
    """
    Execute an lxc command.

    Args:
        subcommands: lxc subcommands, e.g. ["config", "show"] for `lxc config show`
        command_options: Additional arguments, e.g. ["--expanded"]
        stdin: Data piped to the command's standard input. None connects
            stdin to /dev/null so lxc never reads from the caller's terminal.

    Returns:
        CommandOutcome with stdout/stderr bytes and the exit status, which is
        None when the process was terminated by a signal

    Raises:
        OSError: If lxc could not be started (e.g. not installed)
        subprocess.SubprocessError: If communication with the process failed
    """
    argv = [LXC_BINARY, *subcommands, *(command_options or [])]
    logger.debug(f"Executing: {' '.join(argv)}")

    kwargs: Dict[str, Any] = {"capture_output": True}
    if stdin is not None:
        kwargs["input"] = _stdin_bytes(stdin)
    else:
        kwargs["stdin"] = subprocess.DEVNULL

    result = subprocess.run(argv, **kwargs)

    returncode = result.returncode
    if returncode is not None and returncode < 0:
        # Terminated by signal -returncode, no exit status was reported
        returncode = None

    return CommandOutcome(
        stdout=result.stdout or b"", stderr=result.stderr or b"", returncode=returncode
    )


def run_lxc_json(
    subcommands: Sequence[str], command_options: Optional[Sequence[str]] = None
) -> Any:
    """
    Execute an lxc command in JSON output mode and parse its output.

    Raises:
        LxcCommandError: If lxc exits non-zero
        OutputParseError: If the output is not valid JSON
    """
    command_options = [*(command_options or []), "--format", "json"]
    outcome = run_lxc(subcommands, command_options)

    if outcome.returncode != 0:
        raise LxcCommandError(
            [LXC_BINARY, *subcommands, *command_options],
            outcome.returncode,
            outcome.stderr.decode("utf-8", errors="replace"),
        )

    try:
        return json.loads(outcome.stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise OutputParseError(
            f"Could not parse output of 'lxc {' '.join(subcommands)}' as JSON: {e}"
        ) from e


def parse_remote_list(data: Any) -> Dict[str, RemoteInfo]:
    """Validate `lxc remote list` output: a mapping of remote name to attributes."""
    if not isinstance(data, dict):
        raise OutputParseError(
            f"Expected a mapping of remotes, got {type(data).__name__}"
        )

    remotes = {}
    for name, attrs in data.items():
        if not isinstance(attrs, dict):
            raise OutputParseError(f"Remote '{name}' attributes must be a mapping")
        remotes[name] = RemoteInfo(
            name=name,
            addr=attrs.get("Addr", attrs.get("addr", "")),
            protocol=attrs.get("Protocol", attrs.get("protocol", "")),
            public=bool(attrs.get("Public", attrs.get("public", False))),
            raw=attrs,
        )
    return remotes


def parse_container_list(data: Any) -> List[ContainerInfo]:
    """Validate `lxc list` output: a list of records each with a string name."""
    if not isinstance(data, list):
        raise OutputParseError(
            f"Expected a list of containers, got {type(data).__name__}"
        )

    containers = []
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            raise OutputParseError(f"Container record {index} must be a mapping")
        name = record.get("name")
        if not isinstance(name, str):
            raise OutputParseError(f"Container record {index} has no 'name' field")
        containers.append(
            ContainerInfo(
                name=name,
                status=record.get("status", ""),
                type=record.get("type", ""),
                raw=record,
            )
        )
    return containers


def list_remotes() -> Dict[str, RemoteInfo]:
    """Remotes known to the local lxc client."""
    return parse_remote_list(run_lxc_json(["remote", "list"]))


def list_containers(remote: Optional[str] = None) -> List[ContainerInfo]:
    """Containers visible through `lxc list`, optionally on one remote."""
    command_options = [f"{remote}:"] if remote else []
    return parse_container_list(run_lxc_json(["list"], command_options))
