"""Configuration: where to find the server and how to log in."""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger("rconsole.config")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 25575
PROPERTIES_FILE = "server.properties"


def _default_config_dir() -> Path:
    """Get the default configuration directory."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base = Path(xdg)
    else:
        base = Path.home() / ".config"
    return base / "rconsole"


def _parse_port(raw: Any) -> int:
    try:
        port = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring invalid RCON port %r", raw)
        return DEFAULT_PORT
    if not 0 <= port <= 65535:
        logger.warning("Ignoring out-of-range RCON port %d", port)
        return DEFAULT_PORT
    return port


def read_properties(path: Path) -> dict[str, str]:
    """Parse a Java-style ``.properties`` file into a dict."""
    props: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        key, sep, value = line.partition("=")
        if not sep:
            key, sep, value = line.partition(":")
        props[key.strip()] = value.strip()
    return props


@dataclass
class RconConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: str = ""

    @classmethod
    def from_properties(cls, path: Path) -> "RconConfig":
        """Read RCON settings from a server's ``server.properties``.

        A missing file yields the defaults.
        """
        if not path.exists():
            return cls()
        props = read_properties(path)
        host = (
            props.get("rcon.host")
            or props.get("rcon_host")
            or DEFAULT_HOST
        )
        port = props.get("rcon.port") or props.get("rcon_port")
        password = props.get("rcon.password") or props.get("rcon_password") or ""
        return cls(
            host=host,
            port=_parse_port(port) if port else DEFAULT_PORT,
            password=password,
        )


@dataclass
class Config:
    """User-level defaults stored as JSON in the config directory."""

    rcon: RconConfig

    @classmethod
    def load(cls, config_dir: Path | None = None) -> "Config":
        """Load configuration from disk, or return defaults."""
        config_file = cls.config_dir(config_dir) / "config.json"
        if not config_file.exists():
            return cls(rcon=RconConfig())
        data = json.loads(config_file.read_text())
        rcon_data = data.get("rcon", {})
        rcon = RconConfig(**{
            k: v for k, v in rcon_data.items()
            if k in RconConfig.__dataclass_fields__
        })
        rcon.port = _parse_port(rcon.port)
        return cls(rcon=rcon)

    def save(self, config_dir: Path | None = None) -> Path:
        """Save configuration to disk. The file holds a password, so 0600."""
        config_dir = self.config_dir(config_dir)
        config_dir.mkdir(parents=True, exist_ok=True)
        config_file = config_dir / "config.json"
        data: dict[str, Any] = {"rcon": asdict(self.rcon)}
        config_file.write_text(json.dumps(data, indent=2) + "\n")
        config_file.chmod(0o600)
        return config_file

    @staticmethod
    def config_dir(override: Path | None = None) -> Path:
        return override or _default_config_dir()


def resolve(
    host: str | None = None,
    port: int | None = None,
    password: str | None = None,
    properties: Path | None = None,
    config_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> RconConfig:
    """Work out the (host, port, password) to connect with.

    Highest precedence first: explicit arguments, then RCON_HOST /
    RCON_PORT / RCON_PASSWORD, then a single base layer. The base is
    ``server.properties`` (the working directory's unless ``properties``
    is given) when that file exists, otherwise the user config file. Both
    fall back to built-in defaults for missing values; they are never
    merged with each other.
    """
    env = os.environ if env is None else env
    properties = properties or Path(PROPERTIES_FILE)

    if properties.exists():
        logger.debug("Reading RCON settings from %s", properties)
        base = RconConfig.from_properties(properties)
    else:
        base = Config.load(config_dir).rcon

    if host is None:
        host = env.get("RCON_HOST") or base.host
    if port is None:
        port = _parse_port(env["RCON_PORT"]) if env.get("RCON_PORT") else base.port
    if password is None:
        password = env.get("RCON_PASSWORD", base.password)

    return RconConfig(host=host, port=port, password=password)
