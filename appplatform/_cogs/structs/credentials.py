"""
Credentials and connection parameters for the API servers.

Only the essential data are kept here, without any i/o or session handling.
The sessions are built from these data in `appplatform._cogs.clients.auth`.
"""
import dataclasses
from typing import Mapping, Optional


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials and connection flags to use.

    If both the token and the username/password are set, the token is used,
    and the basic credentials are ignored: only one ``Authorization`` header
    can be sent, and the bearer token takes precedence.
    """
    server: str  # e.g. "https://grafana.example.com/"
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    user_agent: Optional[str] = None
    default_headers: Optional[Mapping[str, str]] = None
    ca_path: Optional[str] = None
    insecure: Optional[bool] = None

    def __repr__(self) -> str:
        # Never leak the secrets into the logs or the stack traces.
        token = '***' if self.token else None
        password = '***' if self.password else None
        return (f'{self.__class__.__name__}(server={self.server!r}, token={token!r}, '
                f'username={self.username!r}, password={password!r})')
