from unittest import mock

import pytest


class FakeChannel:
    """Stands in for paramiko.Channel: in-memory stdout/stderr and a closed flag."""
    def __init__(self, stdout: bytes = b"", stderr: bytes = b""):
        self._out = bytearray(stdout)
        self._err = bytearray(stderr)
        self.closed = False
        self.sent = []
        self.recv_sizes = []

    def feed(self, stdout: bytes = b"", stderr: bytes = b""):
        self._out += stdout
        self._err += stderr

    def recv_ready(self):
        return len(self._out) > 0

    def recv(self, nbytes):
        self.recv_sizes.append(nbytes)
        data = bytes(self._out[:nbytes])
        del self._out[:nbytes]
        return data

    def recv_stderr_ready(self):
        return len(self._err) > 0

    def recv_stderr(self, nbytes):
        self.recv_sizes.append(nbytes)
        data = bytes(self._err[:nbytes])
        del self._err[:nbytes]
        return data

    def sendall(self, data):
        self.sent.append(data)

    def makefile(self, *params):
        return mock.Mock(name="stdin", params=params)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("SSH_HOST", "SSH_USER", "SSH_PASSWORD", "SSH_PORT", "SSH_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def ssh_client_cls(channel):
    """Patch paramiko.SSHClient so every instance opens `channel` as its shell."""
    with mock.patch("remote.paramiko.SSHClient") as cls:
        cls.return_value.invoke_shell.return_value = channel
        yield cls
