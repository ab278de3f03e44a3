"""
Connection to a single LXD container.

Despite the name nothing is held open: a Connection is the validated
identity of one target, and every operation is a fresh, synchronous `lxc`
invocation. A Connection must be connected before any command or file
operation, and is not safe for concurrent use.
"""

import logging
import os
import posixpath
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import (
    CHMOD_ERROR,
    CONNECT_ERROR,
    MKDIR_ERROR,
    TEMPDIR_ERROR,
    WRITE_ERROR,
    ConnectError,
    FileError,
    ValidationError,
    reraise_as,
)
from .lxc import NO_EXIT_STATUS, list_containers, list_remotes, run_lxc
from .models import ContainerInfo, Target

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "local"
CONTAINER_TMPDIR = "/tmp"


def _decode(output: bytes) -> str:
    """Decode captured output as UTF-8 and normalise line endings."""
    return output.decode("utf-8", errors="replace").replace("\r\n", "\n")


class Connection:
    """
    Command and file access to one container through the lxc client.

    Recognised target options:
    - service-url: lxc remote the container lives on (default: local)
    - tmpdir: base directory for temporary directories (default: /tmp)
    """

    def __init__(self, target: Target):
        if not target.host:
            raise ValidationError(f"Target {target.safe_name} does not have a host")

        self.target = target
        remote = target.options.get("service-url")
        self.remote_name = DEFAULT_REMOTE if remote is None else remote
        self.container_info: Optional[ContainerInfo] = None

        logger.debug(
            f"Initializing lxd connection to {target.safe_name} "
            f"with options {target.options}"
        )

    @property
    def container_id(self) -> str:
        """Name of the connected container."""
        if self.container_info is None:
            raise RuntimeError(
                f"Connection to {self.target.safe_name} has not been established"
            )
        return self.container_info.name

    @property
    def container_target(self) -> str:
        """Remote-qualified container reference, e.g. local:web-1."""
        return f"{self.remote_name}:{self.container_id}"

    def connect(self) -> bool:
        """
        Check that the remote is known and the container exists.

        Raises:
            ConnectError: On any failure, carrying the original message
        """
        with reraise_as(
            ConnectError, CONNECT_ERROR, f"Failed to connect to {self.target.safe_name}"
        ):
            remotes = list_remotes()
            if self.remote_name not in remotes:
                raise LookupError(f"Could not find remote '{self.remote_name}'")

            # There is no session to open, only a container to find
            containers = list_containers(self.remote_name)
            match = next(
                (c for c in containers if c.name == self.target.host), None
            )
            if match is None:
                raise LookupError(
                    f"Could not find a container with name matching "
                    f"'{self.target.host}'"
                )

            self.container_info = match

        logger.debug(f"Opened session to {self.target.safe_name}")
        return True

    def execute(
        self,
        command: Sequence[str],
        interpreter: Union[str, Sequence[str], None] = None,
        environment: Optional[Dict[str, Any]] = None,
        stdin: Any = None,
    ) -> Tuple[str, str, int]:
        """
        Execute a command inside the container.

        Args:
            command: The command to run as a list of arguments
            interpreter: Prefixed to the command, e.g. "/bin/bash" or ["sh", "-c"]
            environment: Environment variables injected into the command
            stdin: Data redirected to the command's standard input. Without it
                the command gets no stdin at all.

        Returns:
            Tuple of (stdout, stderr, exit_status). A non-zero exit status is
            a normal result; NO_EXIT_STATUS means none was reported.

        Raises:
            OSError, subprocess.SubprocessError: If lxc could not be run at all
        """
        command = list(command)
        if interpreter:
            if isinstance(interpreter, str):
                interpreter = [interpreter]
            command = [*interpreter, *command]

        command_options: List[str] = []
        if stdin is None:
            command_options.append("--disable-stdin")
        for name, value in (environment or {}).items():
            command_options.extend(["--env", f"{name}={value}"])
        command_options.append(self.container_target)
        command_options.append("--")
        command_options.extend(command)

        try:
            outcome = run_lxc(["exec"], command_options, stdin)
        except Exception:
            logger.debug(f"Command aborted on {self.target.safe_name}")
            raise

        status = NO_EXIT_STATUS if outcome.returncode is None else outcome.returncode
        if status == 0:
            logger.debug("Command returned successfully")
        else:
            logger.info(f"Command failed with exit code {status}")

        return _decode(outcome.stdout), _decode(outcome.stderr), status

    def _push(self, source: str, destination: str, recursive: bool) -> None:
        logger.debug(f"Uploading {source}, to {destination}")
        path = f"{self.container_target}/{destination.lstrip('/')}"
        command_options = [str(source), path]
        if recursive:
            command_options.append("-r")

        outcome = run_lxc(["file", "push"], command_options)
        if outcome.returncode != 0:
            output = _decode(outcome.stderr) or _decode(outcome.stdout)
            kind = "directory" if recursive else "file"
            raise FileError(
                f"Error writing {kind} to container {self.container_id}: {output}",
                WRITE_ERROR,
            )

    def write_remote_file(self, source: str, destination: str) -> None:
        """Push a local file into the container."""
        with reraise_as(FileError, WRITE_ERROR):
            self._push(source, destination, recursive=False)

    def write_remote_directory(self, source: str, destination: str) -> None:
        """Push a local directory tree into the container."""
        with reraise_as(FileError, WRITE_ERROR):
            self._push(source, destination, recursive=True)

    def mkdirs(self, dirs: Sequence[str]) -> None:
        """Create directories (and parents) inside the container."""
        with reraise_as(FileError, MKDIR_ERROR, "Could not create directories"):
            _, stderr, exitcode = self.execute(["mkdir", "-p", *dirs])
            if exitcode != 0:
                raise FileError(f"Could not create directories: {stderr}", MKDIR_ERROR)

    def make_tempdir(self) -> str:
        """
        Create a private temporary directory inside the container.

        Returns:
            Path of the new directory, under the target's tmpdir option or /tmp
        """
        tmpdir = self.target.options.get("tmpdir")
        if tmpdir is None:
            tmpdir = CONTAINER_TMPDIR
        tmppath = f"{str(tmpdir).rstrip('/')}/{uuid.uuid4()}"

        with reraise_as(FileError, TEMPDIR_ERROR, "Could not make tempdir"):
            stdout, stderr, exitcode = self.execute(["mkdir", "-m", "700", tmppath])
            if exitcode != 0:
                raise FileError(f"Could not make tempdir: {stderr}", TEMPDIR_ERROR)

        return tmppath or stdout.split("\n", 1)[0]

    def _remove_tempdir(self, path: str) -> None:
        """Best-effort removal; failures are logged, never raised."""
        try:
            _, stderr, exitcode = self.execute(["rm", "-rf", path])
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning(f"Failed to clean up tempdir '{path}': {e}")
            return
        if exitcode != 0:
            logger.warning(f"Failed to clean up tempdir '{path}': {stderr}")

    @contextmanager
    def remote_tempdir(self) -> Iterator[str]:
        """Context manager yielding a tempdir that is removed afterwards."""
        path = self.make_tempdir()
        try:
            yield path
        finally:
            self._remove_tempdir(path)

    def with_remote_tempdir(self, body: Callable[[str], Any]) -> Any:
        """Call body with a fresh tempdir and return its result."""
        with self.remote_tempdir() as path:
            return body(path)

    def write_remote_executable(
        self, directory: str, file: str, filename: Optional[str] = None
    ) -> str:
        """
        Upload a file into directory and make it executable.

        Returns:
            The remote path of the executable
        """
        filename = filename or os.path.basename(file)
        remote_path = posixpath.join(str(directory), filename)
        self.write_remote_file(file, remote_path)
        self.make_executable(remote_path)
        return remote_path

    def make_executable(self, path: str) -> None:
        """Give the owner execute permission on path."""
        with reraise_as(
            FileError, CHMOD_ERROR, f"Could not make file '{path}' executable"
        ):
            _, stderr, exitcode = self.execute(["chmod", "u+x", path])
            if exitcode != 0:
                raise FileError(
                    f"Could not make file '{path}' executable: {stderr}", CHMOD_ERROR
                )
