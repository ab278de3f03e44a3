"""
Shared fixtures: a fake lxc client patched in place of subprocess.run.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from lxdx.connection import Connection
from lxdx.models import Target

DEFAULT_REMOTES = {"local": {"Addr": "unix://", "Protocol": "lxd", "Public": False}}
DEFAULT_CONTAINERS = [
    {"name": "web-1", "status": "Running", "type": "container"},
    {"name": "db-1", "status": "Stopped", "type": "container"},
]


def _to_bytes(value):
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


class FakeLxc:
    """
    Stands in for subprocess.run and answers lxc invocations.

    Responses are matched on the arguments after "lxc" (on()) or on the
    command after "--" of an exec (on_exec()); the most recent match wins.
    Unmatched invocations succeed with empty output.
    """

    def __init__(self):
        self.calls = []
        self._responses = []
        self.on("remote", "list", stdout=json.dumps(DEFAULT_REMOTES))
        self.on("list", stdout=json.dumps(DEFAULT_CONTAINERS))

    def on(self, *prefix, stdout=b"", stderr=b"", returncode=0, raises=None):
        def matches(args):
            return args[: len(prefix)] == list(prefix)

        self._responses.append((matches, stdout, stderr, returncode, raises))

    def on_exec(self, *command, stdout=b"", stderr=b"", returncode=0, raises=None):
        def matches(args):
            if not args or args[0] != "exec" or "--" not in args:
                return False
            tail = args[args.index("--") + 1 :]
            return tail[: len(command)] == list(command)

        self._responses.append((matches, stdout, stderr, returncode, raises))

    def __call__(self, argv, **kwargs):
        self.calls.append((argv, kwargs))
        args = argv[1:]
        for matches, stdout, stderr, returncode, raises in reversed(self._responses):
            if matches(args):
                if raises is not None:
                    raise raises
                return subprocess.CompletedProcess(
                    argv, returncode, _to_bytes(stdout), _to_bytes(stderr)
                )
        return subprocess.CompletedProcess(argv, 0, b"", b"")

    @property
    def argvs(self):
        return [argv for argv, _ in self.calls]

    def exec_commands(self):
        """Commands run through `lxc exec`, without the lxc options."""
        return [
            argv[argv.index("--") + 1 :]
            for argv in self.argvs
            if argv[1] == "exec" and "--" in argv
        ]


@pytest.fixture
def fake_lxc():
    fake = FakeLxc()
    with patch("lxdx.lxc.subprocess.run", new=fake):
        yield fake


@pytest.fixture
def target():
    return Target(name="web", host="web-1", options={})


@pytest.fixture
def connection(fake_lxc, target):
    """A Connection already connected to web-1; lxc calls are reset."""
    conn = Connection(target)
    conn.connect()
    fake_lxc.calls.clear()
    return conn
