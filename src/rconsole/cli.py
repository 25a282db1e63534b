"""CLI entry point for rconsole."""

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rconsole import __version__
from rconsole.config import Config, RconConfig, resolve

if TYPE_CHECKING:
    from rconsole.console import ReadLine


def _add_target_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", default=None, help="Server address (default: 127.0.0.1)")
    p.add_argument("--port", type=int, default=None, help="RCON port (default: 25575)")
    p.add_argument("--password", default=None, help="RCON password")
    p.add_argument(
        "--ask-password",
        action="store_true",
        help="Prompt for the RCON password instead of reading it from config",
    )
    p.add_argument(
        "--properties",
        type=Path,
        default=None,
        help="server.properties to read RCON settings from (default: ./server.properties)",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each reply (default: wait forever)",
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="rconsole",
        description="Remote console client for game servers speaking RCON",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Override configuration directory",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # ── console ───────────────────────────────────────────────────────
    console_p = sub.add_parser("console", help="Open an interactive RCON console")
    _add_target_args(console_p)

    # ── exec ──────────────────────────────────────────────────────────
    exec_p = sub.add_parser("exec", help="Run a single command and print the reply")
    _add_target_args(exec_p)
    exec_p.add_argument("words", nargs="+", metavar="COMMAND", help="Command to run")

    # ── save-config ───────────────────────────────────────────────────
    save_p = sub.add_parser(
        "save-config", help="Store default connection settings for later runs"
    )
    save_p.add_argument("--host", default=None)
    save_p.add_argument("--port", type=int, default=None)
    save_p.add_argument("--password", default=None)

    args = parser.parse_args(argv)
    config_dir = Config.config_dir(args.config_dir)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "console":
        _cmd_console(args, config_dir)
    elif args.command == "exec":
        _cmd_exec(args, config_dir)
    elif args.command == "save-config":
        _cmd_save_config(args, config_dir)


# ── Command implementations ──────────────────────────────────────────────


def _target(args: argparse.Namespace, config_dir: Path) -> RconConfig:
    password = args.password
    if args.ask_password:
        password = getpass.getpass("RCON password: ")
    return resolve(
        host=args.host,
        port=args.port,
        password=password,
        properties=args.properties,
        config_dir=config_dir,
    )


def _cmd_console(args: argparse.Namespace, config_dir: Path) -> None:
    target = _target(args, config_dir)
    try:
        ok = asyncio.run(_console(target, args.timeout))
    except KeyboardInterrupt:
        print("\nDisconnected.")
        return
    if not ok:
        sys.exit(1)


async def _console(
    target: RconConfig,
    timeout: float | None,
    read_line: "ReadLine | None" = None,
) -> bool:
    """Connect and run the console. Returns False if login failed."""
    from rconsole.client import RconSession
    from rconsole.console import prompt_reader, run_console, stdin_reader
    from rconsole.errors import RconError

    print(f"Connecting to RCON at {target.host}:{target.port} ...")
    try:
        session = await RconSession.connect(
            target.host, target.port, target.password, timeout=timeout
        )
    except RconError as e:
        # Covers ConnectError and AuthError; the loop is never entered.
        print(f"Failed to connect/authenticate: {e}", file=sys.stderr)
        return False

    if read_line is None:
        read_line = prompt_reader() if sys.stdin.isatty() else stdin_reader(out=sys.stdout)

    print("Logged in. Type 'Q' or Ctrl-D to exit.")
    await run_console(session, read_line)
    return True


def _cmd_exec(args: argparse.Namespace, config_dir: Path) -> None:
    target = _target(args, config_dir)
    command = " ".join(args.words)
    try:
        reply = asyncio.run(_exec(target, command, args.timeout))
    except KeyboardInterrupt:
        print("\nDisconnected.")
        return
    if reply is None:
        sys.exit(1)
    print(reply)


async def _exec(target: RconConfig, command: str, timeout: float | None) -> str | None:
    from rconsole.client import RconSession
    from rconsole.errors import RconError

    try:
        async with await RconSession.connect(
            target.host, target.port, target.password, timeout=timeout
        ) as session:
            return await session.execute(command)
    except RconError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def _cmd_save_config(args: argparse.Namespace, config_dir: Path) -> None:
    config = Config.load(config_dir)
    if args.host is not None:
        config.rcon.host = args.host
    if args.port is not None:
        config.rcon.port = args.port
    if args.password is not None:
        config.rcon.password = args.password
    config_file = config.save(config_dir)
    print(f"Configuration saved to: {config_file}")


if __name__ == "__main__":
    main()
