import ssl
from typing import Dict, List, Mapping, Optional, Union

import aiohttp
import yarl

from appplatform._cogs.clients import errors
from appplatform._cogs.structs import credentials


def parse_server_url(raw: str) -> yarl.URL:
    """
    Parse and validate the base URL of an API server.

    The URL must be absolute: with the http(s) scheme and the host.
    It can contain a path prefix, e.g. for the servers behind a reverse proxy.
    """
    try:
        url = yarl.URL(raw)
    except (TypeError, ValueError) as e:
        raise errors.URLParseError(f"failed to parse the API url {raw!r}: {e}") from e
    if url.scheme not in ('http', 'https'):
        raise errors.URLParseError(f"failed to parse the API url {raw!r}: unsupported scheme.")
    if not url.host:
        raise errors.URLParseError(f"failed to parse the API url {raw!r}: no host.")
    return url


class APIContext:
    """
    A container for an aiohttp session and the connection info of one server.

    Every client instance has its own context, unless explicitly shared.
    The context is the "transport" of the clients: it knows how to reach
    the server, how to authenticate, and tracks the open responses.

    The aiohttp session is created lazily on the first request, since it
    must be created inside of the running event loop. A session can also be
    provided by the caller; in that case, it is not closed with the context.
    """

    # Contextual information for URL building and requesting.
    info: credentials.ConnectionInfo
    server: yarl.URL

    # List of open responses.
    responses: List[aiohttp.ClientResponse]

    def __init__(
            self,
            info: credentials.ConnectionInfo,
            *,
            session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__()
        self.info = info
        self.server = parse_server_url(info.server)
        self.responses = []
        self._session = session
        self._owned = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or (self._owned and self._session.closed):
            self._session = self.make_aiohttp_session(self.info)
        return self._session

    def make_aiohttp_session(self, info: credentials.ConnectionInfo) -> aiohttp.ClientSession:

        # The SSL part: only the CA verification, no client certificates.
        context: Optional[ssl.SSLContext] = None
        if info.ca_path or info.insecure:
            context = ssl.create_default_context(cafile=info.ca_path)
            if info.insecure:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE

        # The auth headers are added per request, not per session: see `make_headers()`.
        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=0, ssl=context if context is not None else True),
        )

    def make_url(self, url: Union[str, yarl.URL]) -> yarl.URL:
        """
        Join the server URL and a relative URL, segment by segment.

        The server's path prefix is preserved, the duplicate slashes are removed,
        and the query string of the relative URL (if any) is kept.
        Absolute URLs are passed through as is, as are the pre-built URLs
        (e.g. from `make_path_url`, with the segments already escaped).
        """
        if isinstance(url, yarl.URL):
            return url
        if '://' in url:
            return yarl.URL(url)
        relative = yarl.URL(url)
        segments = [segment for segment in relative.path.split('/') if segment]
        joined = self.server.joinpath(*segments)
        return joined.with_query(relative.query) if relative.query_string else joined

    def make_path_url(self, *segments: Optional[str]) -> yarl.URL:
        """
        Join the server URL and the path segments, escaping each one separately.

        The empty segments are skipped. The reserved characters in the segments
        (``?``, ``#``, ``%``, etc.) are percent-encoded, so that the user-provided
        names never leak into the query string or the fragment.
        """
        return self.server.joinpath(*[segment for segment in segments if segment])

    def make_headers(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the request headers in the order of precedence (later wins).

        First, the default headers of the connection. Then, the content type.
        Then, the user agent (if configured). Then, the authorization:
        the bearer token if set, or else the basic credentials if set.
        Finally, the per-request headers (e.g. the patch content types).
        """
        result: Dict[str, str] = dict(self.info.default_headers or {})
        result['Content-Type'] = 'application/json'
        if self.info.user_agent:
            result['User-Agent'] = self.info.user_agent
        if self.info.token:
            result['Authorization'] = f'Bearer {self.info.token}'
        elif self.info.username is not None:
            auth = aiohttp.BasicAuth(self.info.username, self.info.password or '')
            result['Authorization'] = auth.encode()
        result.update(headers or {})
        return result

    def flush_closed_responses(self) -> None:
        # There's no point keeping references to already closed responses.
        self.responses[:] = [_response for _response in self.responses if not _response.closed]

    def add_response(self, response: aiohttp.ClientResponse) -> None:
        # Keep track of responses so they can be closed later when the session is closed.
        self.flush_closed_responses()
        if not response.closed:
            self.responses.append(response)

    def close_open_responses(self) -> None:
        # Close all responses that are still open and are using this session.
        for response in self.responses:
            if not response.closed:
                response.close()
        self.responses.clear()

    async def close(self) -> None:
        # Close all open responses that use this session before closing the session itself.
        self.close_open_responses()

        # The callers' sessions are the callers' business: they might be shared.
        if self._owned and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "APIContext":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
