"""rconsole: RCON client and interactive console for game servers."""

__version__ = "0.1.0"
