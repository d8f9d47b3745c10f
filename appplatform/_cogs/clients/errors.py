"""
API errors.

The underlying client library (now, ``aiohttp``) can be replaced in the future.
We cannot rely on embedding its exceptions all over the code in the package.
Hence, we have our own hierarchy of exceptions for the API errors.

The original errors of the client library are chained as the causes of our own
specialised errors -- for better explainability of errors in the stack traces.

Some selected HTTP statuses are made into their own classes, so that they could
be intercepted and handled by the callers: e.g. "not found" or "conflict".
All other statuses are raised as the base error class and are indistinguishable
from each other (except via the exception's fields).

Every error carries the raw response body as received, unparsed: the servers
of different API families report the errors differently. If the body is
a Kubernetes-style ``Status`` object, it is also parsed into ``payload``.

The higher-level operations wrap these errors into `ResourceError` with
the object's kind and name, so that it is clear what has failed; the original
error remains available as ``__cause__``.
"""
import collections.abc
import json
from typing import Collection, Optional, Type

import aiohttp
from typing_extensions import Literal, TypedDict


class RawStatusCause(TypedDict):
    field: str
    reason: str
    message: str


class RawStatusDetails(TypedDict):
    name: str
    uid: str
    retryAfterSeconds: int
    kind: str
    group: str
    causes: Collection[RawStatusCause]


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.19/#status-v1-meta
class RawStatus(TypedDict):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str
    details: RawStatusDetails


class ClientError(Exception):
    """ The base class for all errors of this package. """


class URLParseError(ClientError, ValueError):
    """ The API URL is malformed; raised when the clients are constructed. """


class MarshalError(ClientError):
    """ The request data cannot be encoded; no request is made in that case. """


class UnmarshalError(ClientError):
    """ The response data cannot be decoded, though the request has succeeded. """


class APITransportError(ClientError):
    """ The server is unreachable or too slow, even after all the retries. """


class APIError(ClientError):
    """ The server has responded with a non-2xx HTTP status. """

    def __init__(
            self,
            body: str = '',
            *,
            status: int,
            payload: Optional[RawStatus] = None,
    ) -> None:
        super().__init__(f"status: {status} body: {body}")
        self._status = status
        self._body = body
        self._payload = payload

    @property
    def status(self) -> int:
        return self._status

    @property
    def body(self) -> str:
        return self._body

    @property
    def payload(self) -> Optional[RawStatus]:
        return self._payload

    @property
    def code(self) -> Optional[int]:
        return self._payload.get('code') if self._payload else None

    @property
    def message(self) -> Optional[str]:
        return self._payload.get('message') if self._payload else None

    @property
    def details(self) -> Optional[RawStatusDetails]:
        return self._payload.get('details') if self._payload else None


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


class ResourceError(ClientError):
    """
    A failed operation on a specific object, with the failure as the cause.

    The message is prefixed with what has been done to which object,
    e.g. ``failed to create keeper 'aws1': status: 409 body: ...``.
    """

    def __init__(
            self,
            message: str,
            *,
            action: str,
            kind: str,
            name: Optional[str] = None,
            namespace: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.action = action
        self.kind = kind
        self.name = name
        self.namespace = namespace

    @property
    def status(self) -> Optional[int]:
        cause = self.__cause__
        return cause.status if isinstance(cause, APIError) else None


class UnregisteredKindError(ClientError, LookupError):
    """ There is no client registered for the requested kind. """


class WatchingError(ClientError):
    """ The watch-stream has reported an error event. """


def caused_by(exc: BaseException, cls: Type[BaseException]) -> bool:
    """
    Check if the error or any of its causes is of the specific class.

    Usage::

        except ResourceError as e:
            if errors.caused_by(e, errors.APINotFoundError):
                ...
    """
    cause: Optional[BaseException] = exc
    while cause is not None:
        if isinstance(cause, cls):
            return True
        cause = cause.__cause__
    return False


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Check for the non-2xx statuses, and raise with extended information.

    The response's body is read in full for the errors (and only for them):
    the successful responses remain unread, so that they could be streamed.
    """
    if response.status < 200 or response.status > 299:

        # Read the response's body before it is closed by raise_for_status().
        try:
            body = await response.text()
        except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError, UnicodeDecodeError):
            body = ''

        payload: Optional[RawStatus]
        try:
            payload = json.loads(body) if body else None
        except json.JSONDecodeError:
            payload = None

        # Better be safe: who knows which sensitive information can be dumped unless kind==Status.
        if not isinstance(payload, collections.abc.Mapping) or payload.get('kind') != 'Status':
            payload = None

        cls = (
            APIUnauthorizedError if response.status == 401 else
            APIForbiddenError if response.status == 403 else
            APINotFoundError if response.status == 404 else
            APIConflictError if response.status == 409 else
            APIError
        )

        # Raise the package-specific error while keeping the original error in scope.
        # 1xx & 3xx statuses are not errors for aiohttp; they are for us (redirects are followed).
        try:
            response.raise_for_status()
        except aiohttp.ClientResponseError as e:
            raise cls(body, status=response.status, payload=payload) from e
        response.release()
        raise cls(body, status=response.status, payload=payload)
