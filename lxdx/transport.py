"""
LXD transport: the actions an orchestration tool runs against a container.

Each action opens its own Connection, so no state is kept between actions.
Transport errors are reported in the returned Result rather than raised;
failures to run lxc at all still propagate.
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Sequence, Union

from .connection import Connection
from .errors import TransportError
from .models import Result, Target

logger = logging.getLogger(__name__)

SHELL = ["sh", "-c"]


class LXDTransport:
    """Runs commands, uploads and scripts against LXD containers."""

    @contextmanager
    def with_connection(self, target: Target) -> Iterator[Connection]:
        """Yield a connected Connection to target."""
        conn = Connection(target)
        conn.connect()
        yield conn

    def run_command(
        self,
        target: Target,
        command: str,
        env_vars: Optional[Dict[str, Any]] = None,
        stdin: Any = None,
    ) -> Result:
        """Run a shell command string in the container."""
        logger.info(f"Running command on {target.safe_name}: {command}")
        try:
            with self.with_connection(target) as conn:
                stdout, stderr, exit_code = conn.execute(
                    [command], interpreter=SHELL, environment=env_vars, stdin=stdin
                )
        except TransportError as e:
            return Result(target.safe_name, "command", command, error=e.to_dict())

        return Result(
            target.safe_name,
            "command",
            command,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
        )

    def upload(
        self,
        target: Target,
        source: Union[str, os.PathLike],
        destination: str,
    ) -> Result:
        """Upload a local file or directory to destination in the container."""
        source = str(source)
        logger.info(f"Uploading {source} to {target.safe_name}:{destination}")
        try:
            with self.with_connection(target) as conn:
                if os.path.isdir(source):
                    conn.write_remote_directory(source, destination)
                else:
                    conn.write_remote_file(source, destination)
        except TransportError as e:
            return Result(target.safe_name, "upload", source, error=e.to_dict())

        return Result(target.safe_name, "upload", source)

    def run_script(
        self,
        target: Target,
        script: Union[str, os.PathLike],
        arguments: Sequence[str] = (),
        env_vars: Optional[Dict[str, Any]] = None,
        interpreter: Optional[str] = None,
    ) -> Result:
        """
        Copy a local script into a temporary directory in the container and run it.

        Args:
            target: Container to run on
            script: Local path of the script
            arguments: Arguments passed to the script
            env_vars: Environment variables for the script
            interpreter: Optional interpreter, e.g. "/bin/bash"; otherwise the
                script's own shebang is used
        """
        script = str(script)
        logger.info(f"Running script {script} on {target.safe_name}")
        try:
            with self.with_connection(target) as conn:
                with conn.remote_tempdir() as tmpdir:
                    remote_path = conn.write_remote_executable(tmpdir, script)
                    stdout, stderr, exit_code = conn.execute(
                        [remote_path, *arguments],
                        interpreter=interpreter,
                        environment=env_vars,
                    )
        except TransportError as e:
            return Result(target.safe_name, "script", script, error=e.to_dict())

        return Result(
            target.safe_name,
            "script",
            script,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
        )
