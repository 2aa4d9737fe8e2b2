import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl

from dotenv import dotenv_values

from phoenix_session_client.heartbeat import HEARTBEAT_INTERVAL

DEFAULT_WS_URL = "ws://localhost:4000/socket"

log_level_map = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}


@dataclass
class ClientSettings:
    """Connection settings read from the environment.

    Recognised variables:
        PHX_WS_URL - base socket URL (default ``ws://localhost:4000/socket``)
        PHX_PARAMS - connection params as a query string, e.g. ``token=abc&user_id=1``
        PHX_HEARTBEAT_INTERVAL - seconds between heartbeats (default 2.0)
        LOG_LEVEL - DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
    """
    websocket_url: str = DEFAULT_WS_URL
    params: List[Tuple[str, str]] = field(default_factory=list)
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'ClientSettings':
        """Load settings from ``env_file`` (or ``.env``), overridden by the process environment."""
        values: Dict[str, Optional[str]] = dict(dotenv_values(env_file or ".env"))
        values.update(os.environ)

        interval = values.get("PHX_HEARTBEAT_INTERVAL") or str(HEARTBEAT_INTERVAL)
        try:
            heartbeat_interval = float(interval)
        except ValueError as e:
            raise ValueError(f"PHX_HEARTBEAT_INTERVAL must be a number, got {interval!r}") from e

        log_level = (values.get("LOG_LEVEL") or "INFO").upper()

        return cls(
            websocket_url=values.get("PHX_WS_URL") or DEFAULT_WS_URL,
            params=parse_qsl(values.get("PHX_PARAMS") or ""),
            heartbeat_interval=heartbeat_interval,
            log_level=log_level_map.get(log_level, logging.INFO),
        )

    def client_kwargs(self) -> Dict[str, Any]:
        return {
            "websocket_url": self.websocket_url,
            "params": self.params,
            "heartbeat_interval": self.heartbeat_interval,
        }
