"""
The client of the secrets API: keepers and secure values.

This API family is not served via the generic object-model clients:
it has its own paths, its own request engine (no patching, no watching),
and its own policy of retries & timeouts. The transport (the aiohttp session,
the auth headers, the retries) is still the same as for all other clients.

Usage::

    async with SecretsClient('https://grafana.example.com/', token='...') as client:
        keeper = await client.create_keeper('org-5', Keeper(...))
        await client.activate_keeper('org-5', keeper.metadata.name)
"""
import logging
from typing import Any, Callable, List, Mapping, Optional, TypeVar

import aiohttp
import yarl

from appplatform._cogs.clients import api, auth, errors
from appplatform._cogs.configs import configuration
from appplatform._cogs.structs import credentials, references
from appplatform._core.engines import loggers
from appplatform._core.secrets import models

logger = logging.getLogger(__name__)

PATH_PREFIX = ('apis', models.API_GROUP, models.API_VERSION)
KEEPERS = 'keepers'
SECURE_VALUES = 'securevalues'

_T = TypeVar('_T')


class SecretsClient:
    """
    A client of the secrets API of one server with one set of credentials.

    The base URL is parsed & validated at construction: `URLParseError` if bad.
    If both the token and the basic credentials are given, the token is used.

    Without a session given, a private one is created on the first request,
    and is closed with the client (explicitly or as a context manager).
    A given session is never closed by the client: it is the caller's.

    All operations raise `ResourceError` on failures, with the original error
    as its cause: e.g. `APINotFoundError`, `MarshalError`, `APITransportError`.
    """

    def __init__(
            self,
            url: str,
            *,
            token: Optional[str] = None,
            basic_auth: Optional[aiohttp.BasicAuth] = None,
            session: Optional[aiohttp.ClientSession] = None,
            settings: Optional[configuration.ClientSettings] = None,
            user_agent: Optional[str] = None,
            default_headers: Optional[Mapping[str, str]] = None,
            namespace: Optional[str] = None,
    ) -> None:
        super().__init__()
        info = credentials.ConnectionInfo(
            server=url,
            token=token or None,
            username=basic_auth.login if basic_auth is not None else None,
            password=basic_auth.password if basic_auth is not None else None,
            user_agent=user_agent or None,
            default_headers=dict(default_headers or {}),
        )
        self._context = auth.APIContext(info, session=session)
        self._settings = settings if settings is not None else configuration.ClientSettings()
        self._namespace = namespace

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} for {self._context.server}>'

    @property
    def namespace(self) -> Optional[str]:
        """ The namespace the client was configured for; informational only. """
        return self._namespace

    @property
    def context(self) -> auth.APIContext:
        return self._context

    async def close(self) -> None:
        await self._context.close()

    async def __aenter__(self) -> "SecretsClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def create_keeper(self, namespace: str, keeper: models.Keeper) -> models.Keeper:
        name = keeper.metadata.name
        try:
            raw = await self._request('post', self._path(namespace, KEEPERS), payload=keeper.as_dict())
            return _decode(models.Keeper.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('create', 'keeper', namespace, name, e) from e

    async def get_keeper(self, namespace: str, name: str) -> models.Keeper:
        try:
            raw = await self._request('get', self._path(namespace, KEEPERS, name))
            return _decode(models.Keeper.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('get', 'keeper', namespace, name, e) from e

    async def list_keepers(self, namespace: str) -> List[models.Keeper]:
        try:
            raw = await self._request('get', self._path(namespace, KEEPERS))
            return _decode_items(models.Keeper.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('list', 'keepers', namespace, None, e) from e

    async def update_keeper(self, namespace: str, name: str, keeper: models.Keeper) -> models.Keeper:
        try:
            raw = await self._request('put', self._path(namespace, KEEPERS, name), payload=keeper.as_dict())
            return _decode(models.Keeper.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('update', 'keeper', namespace, name, e) from e

    async def delete_keeper(self, namespace: str, name: str) -> None:
        try:
            await self._request('delete', self._path(namespace, KEEPERS, name), expect_body=False)
        except errors.ClientError as e:
            raise _failure('delete', 'keeper', namespace, name, e) from e

    async def activate_keeper(self, namespace: str, name: str) -> None:
        """
        Activate a keeper for the new secure values in the namespace.

        The state of the keeper is not checked client-side: whether
        the activation is possible is decided by the server.
        """
        log = loggers.ObjectLogger(kind=models.KEEPER_KIND, identifier=_identify(namespace, name))
        try:
            await self._request('post', self._path(namespace, KEEPERS, name, 'activate'),
                                payload={}, expect_body=False)
        except errors.ClientError as e:
            raise _failure('activate', 'keeper', namespace, name, e) from e
        log.info("Keeper is activated.")

    async def create_secure_value(self, namespace: str, value: models.SecureValue) -> models.SecureValue:
        name = value.metadata.name
        try:
            raw = await self._request('post', self._path(namespace, SECURE_VALUES), payload=value.as_dict())
            return _decode(models.SecureValue.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('create', 'secure value', namespace, name, e) from e

    async def get_secure_value(self, namespace: str, name: str) -> models.SecureValue:
        try:
            raw = await self._request('get', self._path(namespace, SECURE_VALUES, name))
            return _decode(models.SecureValue.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('get', 'secure value', namespace, name, e) from e

    async def list_secure_values(self, namespace: str) -> List[models.SecureValue]:
        try:
            raw = await self._request('get', self._path(namespace, SECURE_VALUES))
            return _decode_items(models.SecureValue.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('list', 'secure values', namespace, None, e) from e

    async def update_secure_value(
            self,
            namespace: str,
            name: str,
            value: models.SecureValue,
    ) -> models.SecureValue:
        try:
            raw = await self._request('put', self._path(namespace, SECURE_VALUES, name), payload=value.as_dict())
            return _decode(models.SecureValue.from_dict, raw)
        except errors.ClientError as e:
            raise _failure('update', 'secure value', namespace, name, e) from e

    async def delete_secure_value(self, namespace: str, name: str) -> None:
        try:
            await self._request('delete', self._path(namespace, SECURE_VALUES, name), expect_body=False)
        except errors.ClientError as e:
            raise _failure('delete', 'secure value', namespace, name, e) from e

    def _path(
            self,
            namespace: str,
            plural: str,
            name: Optional[str] = None,
            subresource: Optional[str] = None,
    ) -> yarl.URL:
        # Every segment is escaped on its own: names are not trusted to be URL-safe.
        return self._context.make_path_url(*PATH_PREFIX, 'namespaces', namespace, plural, name, subresource)

    async def _request(
            self,
            method: str,
            path: yarl.URL,
            *,
            payload: Optional[object] = None,
            expect_body: bool = True,
    ) -> Any:
        """
        Perform one logical request (with retries), and decode the response.

        The non-2xx responses are raised before reading them as the data,
        so they are never decoded. The responses with no content (HTTP 204),
        or those where nothing is expected, are read but not decoded either.
        """
        response = await api.request(
            method=method,
            url=path,
            payload=payload,
            context=self._context,
            settings=self._settings,
            logger=logger,
        )
        data = await api.read(response)
        if not expect_body or response.status == api.HTTP_NO_CONTENT_CODE:
            return None
        return api.unmarshal(data)


def _identify(namespace: str, name: str) -> references.Identifier:
    return references.Identifier(namespace=references.NamespaceName(namespace), name=name)


def _decode(fn: Callable[[Mapping[str, Any]], _T], raw: Any) -> _T:
    if not isinstance(raw, dict):
        raise errors.UnmarshalError(f"failed to unmarshal response body: expected an object, got {raw!r}")
    try:
        return fn(raw)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise errors.UnmarshalError(f"failed to unmarshal response body: {e}") from e


def _decode_items(fn: Callable[[Mapping[str, Any]], _T], raw: Any) -> List[_T]:
    if not isinstance(raw, dict) or not isinstance(raw.get('items') or [], list):
        raise errors.UnmarshalError(f"failed to unmarshal response body: expected a list, got {raw!r}")
    return [_decode(fn, item) for item in raw.get('items') or []]


def _failure(
        action: str,
        kind: str,
        namespace: str,
        name: Optional[str],
        exc: errors.ClientError,
) -> errors.ResourceError:
    what = f"{kind} {name!r}" if name is not None else kind
    return errors.ResourceError(
        f"failed to {action} {what}: {exc}",
        action=action,
        kind=kind,
        name=name,
        namespace=namespace,
    )
