"""
All configuration flags, options, settings to fine-tune the clients.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

Every client instance gets its own settings object (or a default one).
The settings are not shared globally: two clients with different retry
or timeout policies can coexist in the same process and the same event loop.

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).
"""
import dataclasses
from typing import Iterable, Optional, Union


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 90
    """
    A timeout for the whole API request, including connecting, sending,
    and reading the full response (but not the back-off sleeps between retries).

    Measured in seconds. Set to `None` to wait forever (not recommended).
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for establishing a connection to the server only.
    If not set, the ``request_timeout`` is used for the whole request.
    """

    error_backoffs: Union[None, float, Iterable[float]] = (1, 2, 4)
    """
    Back-off delays (in seconds) before retrying a failed request.

    The number of retries is the number of back-offs: three by default,
    i.e. up to four attempts in total. A single float means one retry.
    An infinite iterable (e.g. a generator) means retrying forever.
    ``None`` or an empty iterable disables the retries.

    Only the temporary errors are retried: the connection errors, the timeouts,
    HTTP 429 "Too Many Requests", and all HTTP 5xx except 501.
    All other errors are escalated immediately.
    """


@dataclasses.dataclass
class WatchingSettings:

    server_timeout: Optional[float] = None
    """
    The maximum duration of one streaming request. Passed to the server
    as ``?timeoutSeconds=``; the server closes the stream by then.
    """

    client_timeout: Optional[float] = None
    """
    The maximum duration of one streaming request, enforced client-side.
    Normally not needed if the server timeout is set and honored.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for establishing a streaming connection.
    If not set, the networking's connection or request timeouts are used.
    """


@dataclasses.dataclass
class ClientSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    watching: WatchingSettings = dataclasses.field(default_factory=WatchingSettings)
