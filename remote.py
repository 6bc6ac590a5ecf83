import os
import time
import logging
from typing import Callable
from dotenv import load_dotenv
import paramiko

load_dotenv()
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
READ_CHUNK = 1024


class SshError(RuntimeError):
    """Raised when the remote shell cannot be opened or used."""


def read_available(ready: Callable[[], bool], recv: Callable[[int], bytes]) -> str:
    """
    Read every byte currently available on a channel stream and decode it as UTF-8.

    Note that a multi-byte character split across two reads is not reassembled.
    """
    chunks = []
    while ready():
        data = recv(READ_CHUNK)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks).decode("utf-8", errors="replace")


def wait_until(predicate: Callable[[], bool], timeout: float, interval: float = 0.1) -> bool:
    """Poll predicate until it returns True or timeout seconds have passed."""
    deadline = time.monotonic() + timeout
    while True:
        if predicate():
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)


class SshClient:
    """
    A simple SSH client wrapper using Paramiko to drive an interactive shell.
    Output is read without blocking and kept until fetched with get_stdout()/get_stderr().
    Configuration is loaded from environment variables or can be passed directly.
    """
    def __init__(
        self,
        hostname: str = None,
        username: str = None,
        password: str = None,
        port: int = None,
        timeout: float = None
    ):
        # Load from env if not provided
        self.hostname = hostname or os.getenv("SSH_HOST")
        self.username = username or os.getenv("SSH_USER")
        self.password = password if password is not None else os.getenv("SSH_PASSWORD", "")
        self.port = port or int(os.getenv("SSH_PORT", 22))
        self.timeout = timeout if timeout is not None else float(os.getenv("SSH_TIMEOUT", DEFAULT_TIMEOUT))
        self.client = None
        self.channel = None
        self._stdout_buffer = ""
        self._stderr_buffer = ""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open_shell(self):
        """
        Connect with password auth and open a shell channel.
        Returns a line-buffered file writing to the shell's stdin.
        """
        # We only support one shell at a time
        self.close()

        try:
            self.client = paramiko.SSHClient()
            self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

            logger.info(f"Connecting to {self.username}@{self.hostname}:{self.port}")
            self.client.connect(
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            self.channel = self.client.invoke_shell()
            logger.info("SSH shell opened.")
        except Exception as e:
            logger.error(f"SSH connection failed: {e}")
            self.close()
            raise SshError(f"Could not open shell on {self.hostname}:{self.port}: {e}") from e

        return self.channel.makefile("w", 1)

    def send(self, command: str):
        """Send a single command line to the shell."""
        if self.channel is None:
            raise SshError("No shell open. Call open_shell() first.")
        self.channel.sendall((command + "\n").encode("utf-8"))

    def get_stdout(self) -> str:
        # Prepend the buffer, which may have been filled by is_shell_closed()
        contents = self._stdout_buffer
        if self.channel is not None:
            contents += read_available(self.channel.recv_ready, self.channel.recv)
        self._stdout_buffer = ""
        return contents

    def get_stderr(self) -> str:
        contents = self._stderr_buffer
        if self.channel is not None:
            contents += read_available(self.channel.recv_stderr_ready, self.channel.recv_stderr)
        self._stderr_buffer = ""
        return contents

    def is_shell_closed(self) -> bool:
        """
        Check whether the shell's channel is closed.

        Can be used to make sure that stdout/stderr are fully populated
        after an exit/logout command has been sent to the shell.
        """
        if self.channel is None:
            return True

        # Some shells won't close until the pending output has been read.
        try:
            self._stdout_buffer = self.get_stdout()
        except OSError as e:
            logger.debug(f"Failed to drain stdout: {e}")
        try:
            self._stderr_buffer = self.get_stderr()
        except OSError as e:
            logger.debug(f"Failed to drain stderr: {e}")

        return self.channel.closed

    def wait_for_shell_closed(self, timeout: float = None, interval: float = 0.1) -> bool:
        return wait_until(self.is_shell_closed, timeout if timeout is not None else self.timeout, interval)

    def close(self):
        """Close the shell channel and the SSH session."""
        if self.channel is not None:
            self.channel.close()
            self.channel = None
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info("SSH connection closed.")


def can_connect_via_ssh(hostname: str, port: int, username: str, password: str) -> bool:
    """Open a shell and immediately discard it. Returns False on any failure."""
    logger.info(f"Attempting to SSH to {username}@{hostname}:{port}")
    try:
        with SshClient(hostname, username, password, port, timeout=1.0) as client:
            client.open_shell()
            return True
    except Exception as e:
        logger.debug(f"SSH connection failed: {e}")
        return False
