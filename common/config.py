"""Client configuration.

Defaults come from environment variables so embedding applications can tune
the engine without code changes:
- RCP_CONNECT_TIMEOUT_S: connect timeout used when a caller passes 0
- RCP_REQUEST_TIMEOUT_S: bounded wait for authenticate/list/launch replies
- RCP_VALIDATE_APP_IDS: check launch ids against the last fetched catalog
- RCP_CLIENT_NAME: name announced in HELLO
"""

import os
from dataclasses import dataclass

from common.protocol import (
    BYE_WAIT_TIMEOUT_S,
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_REQUEST_TIMEOUT_S,
    HELLO_INTERVAL_S,
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class ClientConfig:
    """Tunables for an RcpClient."""

    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    hello_interval_s: float = HELLO_INTERVAL_S
    bye_timeout_s: float = BYE_WAIT_TIMEOUT_S
    validate_app_ids: bool = True
    client_name: str = "rcp-client"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build a config from RCP_* environment variables."""
        return cls(
            connect_timeout_s=float(
                os.environ.get("RCP_CONNECT_TIMEOUT_S", str(DEFAULT_CONNECT_TIMEOUT_S))
            ),
            request_timeout_s=float(
                os.environ.get("RCP_REQUEST_TIMEOUT_S", str(DEFAULT_REQUEST_TIMEOUT_S))
            ),
            validate_app_ids=os.environ.get("RCP_VALIDATE_APP_IDS", "1").lower() in _TRUE_VALUES,
            client_name=os.environ.get("RCP_CLIENT_NAME", "rcp-client"),
        )
