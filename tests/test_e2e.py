"""End-to-end tests: CLI entry points against a stub RCON server."""

import socket
import tempfile
from pathlib import Path

import pytest

from conftest import StubRconServer
from rconsole import cli
from rconsole.config import Config, RconConfig
from rconsole.console import read_lines


@pytest.fixture()
def config_dir():
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.mark.asyncio
async def test_console_session(capsys):
    async with StubRconServer() as server:
        target = RconConfig("127.0.0.1", server.port, "anything")
        ok = await cli._console(target, None, read_lines(["list"]))

    assert ok
    out = capsys.readouterr().out
    assert f"Connecting to RCON at 127.0.0.1:{server.port} ..." in out
    assert "Logged in." in out
    assert "OK:list" in out
    assert "Exiting console." in out


@pytest.mark.asyncio
async def test_console_auth_rejected_never_starts_loop(capsys):
    prompts = []

    async def read_line(prompt):
        prompts.append(prompt)
        return "list"

    async with StubRconServer(auth_id=-1) as server:
        target = RconConfig("127.0.0.1", server.port, "wrong")
        ok = await cli._console(target, None, read_line)

    assert not ok
    assert prompts == []
    assert server.commands == []
    captured = capsys.readouterr()
    assert "Failed to connect/authenticate: Authentication failed" in captured.err
    assert "Logged in." not in captured.out


@pytest.mark.asyncio
async def test_exec_one_shot():
    async with StubRconServer() as server:
        reply = await cli._exec(RconConfig("127.0.0.1", server.port, ""), "list", None)
    assert reply == "OK:list"
    assert server.commands == ["list"]


@pytest.mark.asyncio
async def test_exec_auth_rejected(capsys):
    async with StubRconServer(auth_id=-1) as server:
        reply = await cli._exec(RconConfig("127.0.0.1", server.port, ""), "list", None)
    assert reply is None
    assert "Authentication failed" in capsys.readouterr().err


def test_main_console_connect_refused_exits_1(config_dir, monkeypatch):
    for var in ("RCON_HOST", "RCON_PORT", "RCON_PASSWORD"):
        monkeypatch.delenv(var, raising=False)
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]

    with pytest.raises(SystemExit) as excinfo:
        cli.main([
            "--config-dir", str(config_dir),
            "console",
            "--host", "127.0.0.1",
            "--port", str(port),
            "--properties", str(config_dir / "server.properties"),
        ])
    assert excinfo.value.code == 1


def test_main_console_port_out_of_range_exits_1(config_dir, monkeypatch, capsys):
    for var in ("RCON_HOST", "RCON_PORT", "RCON_PASSWORD"):
        monkeypatch.delenv(var, raising=False)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([
            "--config-dir", str(config_dir),
            "console",
            "--host", "127.0.0.1",
            "--port", "70000",
            "--properties", str(config_dir / "server.properties"),
        ])
    assert excinfo.value.code == 1
    assert "Failed to connect/authenticate:" in capsys.readouterr().err


def test_main_save_config(config_dir, capsys):
    cli.main([
        "--config-dir", str(config_dir),
        "save-config", "--host", "mc.local", "--port", "25590",
    ])
    assert "Configuration saved to:" in capsys.readouterr().out
    cfg = Config.load(config_dir)
    assert cfg.rcon == RconConfig("mc.local", 25590, "")
