#!/usr/bin/env python3
"""
ssh_shell.py

Run a few commands in an interactive shell on a remote host and print what the
shell wrote back.

Each COMMAND is sent as its own line, followed by `exit`. The script then
polls until the shell closes so stdout/stderr are complete.

Usage:
  python ssh_shell.py 10.0.0.5 --user admin --password admin "uname -a" "uptime"
  python ssh_shell.py 10.0.0.5 --user admin --password admin --check
"""
import os
import sys
import argparse
import logging
from remote import SshClient, SshError, can_connect_via_ssh

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s: %(message)s",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Send commands to a remote shell over SSH")
    parser.add_argument("host", help="Remote host name or address")
    parser.add_argument("commands", nargs="*", help="Commands to run, one per line")
    parser.add_argument("--port", type=int, default=int(os.getenv("SSH_PORT", 22)))
    parser.add_argument("--user", default=os.getenv("SSH_USER"))
    parser.add_argument("--password", default=os.getenv("SSH_PASSWORD", ""))
    parser.add_argument("--timeout", type=float, default=None,
                        help="Connect timeout in seconds")
    parser.add_argument("--wait", type=float, default=10.0,
                        help="Seconds to wait for the shell to close after exit")
    parser.add_argument("--check", action="store_true",
                        help="Only check that an SSH shell can be opened")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def run(args) -> int:
    if args.check:
        ok = can_connect_via_ssh(args.host, args.port, args.user, args.password)
        print("reachable" if ok else "unreachable")
        return 0 if ok else 1

    with SshClient(args.host, args.user, args.password, args.port, args.timeout) as client:
        try:
            client.open_shell()
        except SshError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

        try:
            for command in args.commands:
                client.send(command)
            client.send("exit")
        except OSError as e:
            print(f"Error: shell closed early: {e}", file=sys.stderr)

        closed = client.wait_for_shell_closed(args.wait)
        if not closed:
            logger.warning(f"Shell still open after {args.wait}s")

        sys.stdout.write(client.get_stdout())
        sys.stderr.write(client.get_stderr())
    return 0 if closed else 1


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
