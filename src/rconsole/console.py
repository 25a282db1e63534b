"""Interactive console that reads lines from the user and runs them over RCON."""

import asyncio
import logging
import sys
from typing import Awaitable, Callable, Iterable, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from rconsole.client import RconSession
from rconsole.errors import ConnectionClosedError, RconError, RconTimeoutError

logger = logging.getLogger("rconsole.console")

PROMPT = "> "
EXIT_NOTICE = "Exiting console."
QUIT_COMMAND = "q"
# Servers tend to drop the socket after "stop", so nothing is sent after it.
STOP_COMMAND = "stop"

# Takes the prompt to display, returns one line. Raises EOFError when
# there is no more input.
ReadLine = Callable[[str], Awaitable[str]]


def prompt_reader() -> ReadLine:
    """Line reader for an interactive terminal, with in-session history."""
    session: PromptSession[str] = PromptSession(history=InMemoryHistory())

    async def read_line(prompt: str) -> str:
        return await session.prompt_async(prompt)

    return read_line


def stdin_reader(stream: TextIO | None = None, out: TextIO | None = None) -> ReadLine:
    """Line reader for piped (non-tty) input."""
    stream = stream or sys.stdin

    async def read_line(prompt: str) -> str:
        if out is not None:
            out.write(prompt)
            out.flush()
        line = await asyncio.to_thread(stream.readline)
        if not line:
            raise EOFError
        return line

    return read_line


def read_lines(lines: Iterable[str]) -> ReadLine:
    """Adapt a fixed sequence of lines into a reader."""
    it = iter(lines)

    async def read_line(prompt: str) -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    return read_line


async def run_console(
    session: RconSession,
    read_line: ReadLine | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> None:
    """Run the read-execute-print loop until the user quits.

    The loop ends on end of input, on ``Q``, after a ``stop`` command, or
    when the connection is lost. A failed command is reported on ``err``
    and the loop carries on. The session is closed when the loop ends,
    including when the task running it is cancelled.
    """
    read_line = read_line or prompt_reader()
    out = out or sys.stdout
    err = err or sys.stderr

    try:
        while True:
            try:
                line = await read_line(PROMPT)
            except (EOFError, KeyboardInterrupt):
                print(EXIT_NOTICE, file=out)
                break

            cmd = line.strip()
            if not cmd:
                continue
            if cmd.lower() == QUIT_COMMAND:
                break

            try:
                reply = await session.execute(cmd)
            except (ConnectionClosedError, RconTimeoutError) as e:
                logger.warning("Connection lost: %s", e)
                print(f"Error: {e}", file=err)
                print(EXIT_NOTICE, file=out)
                break
            except RconError as e:
                print(f"Error: {e}", file=err)
            else:
                print(reply, file=out)

            if cmd.lower() == STOP_COMMAND:
                break
    finally:
        await session.close()
