"""
The object-model clients: untyped CRUD, listing & watching of raw objects.

The typed clients (`appplatform._core.clients.typed`) treat these clients
as black boxes that follow the `ObjectClient` protocol: any implementation
will do, including the fake ones in tests or the ones over other transports.

`HTTPObjectClient` is the default implementation: one client per resource kind,
talking to a Kubernetes-style REST API with the JSON bodies. It does not
interpret the objects' content except for their metadata: namespaces, names,
and resource versions.
"""
import asyncio
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional, cast

import aiohttp
from typing_extensions import Protocol

from appplatform._cogs.clients import api, auth, errors
from appplatform._cogs.configs import configuration
from appplatform._cogs.structs import bodies, options, patches, references

logger = logging.getLogger(__name__)


class ObjectClient(Protocol):
    """
    The capabilities of a type-erased client for one resource kind.

    All methods operate on the raw bodies as JSON-decoded from the API.
    The errors are raised as `APIError` and its descendants (not found,
    conflict, etc.), or as `APITransportError` for the networking issues.
    """

    async def list(
            self,
            namespace: references.Namespace,
            options: Optional[options.ListOptions] = None,
    ) -> bodies.RawList:
        ...

    def watch(
            self,
            namespace: references.Namespace,
            options: Optional[options.WatchOptions] = None,
            *,
            stopper: Optional["asyncio.Future[Any]"] = None,
    ) -> AsyncGenerator[bodies.RawEvent, None]:
        ...

    async def get(
            self,
            identifier: references.Identifier,
    ) -> bodies.RawBody:
        ...

    async def create(
            self,
            identifier: references.Identifier,
            body: bodies.RawBody,
            options: Optional[options.CreateOptions] = None,
    ) -> bodies.RawBody:
        ...

    async def update(
            self,
            identifier: references.Identifier,
            body: bodies.RawBody,
            options: Optional[options.UpdateOptions] = None,
    ) -> bodies.RawBody:
        ...

    async def patch(
            self,
            identifier: references.Identifier,
            request: patches.PatchRequest,
            options: Optional[options.PatchOptions] = None,
    ) -> bodies.RawBody:
        ...

    async def delete(
            self,
            identifier: references.Identifier,
            options: Optional[options.DeleteOptions] = None,
    ) -> None:
        ...


class HTTPObjectClient:
    """
    An object-model client for one resource kind over a REST API.
    """

    def __init__(
            self,
            resource: references.Resource,
            *,
            context: auth.APIContext,
            settings: Optional[configuration.ClientSettings] = None,
    ) -> None:
        super().__init__()
        self.resource = resource
        self.context = context
        self.settings = settings if settings is not None else configuration.ClientSettings()

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} for {self.resource!r} at {self.context.server}>'

    async def list(
            self,
            namespace: references.Namespace,
            options: Optional[options.ListOptions] = None,
    ) -> bodies.RawList:
        """
        List the objects of the resource kind in a namespace (or cluster-wide).

        The items of the list are enriched with the kind and the API version
        of the list, since the API servers usually omit them in the items.
        """
        params = options.as_params() if options is not None else None
        rsp = await api.get(
            url=self.resource.get_url(namespace=namespace, params=params),
            context=self.context,
            settings=self.settings,
            logger=logger,
        )
        if not isinstance(rsp, dict):
            raise errors.UnmarshalError(f"Expected a list object, got {type(rsp).__name__}.")

        items: List[bodies.RawBody] = []
        for item in rsp.get('items') or []:
            if 'kind' in rsp:
                item.setdefault('kind', rsp['kind'][:-4] if rsp['kind'][-4:] == 'List' else rsp['kind'])
            if 'apiVersion' in rsp:
                item.setdefault('apiVersion', rsp['apiVersion'])
            items.append(item)
        rsp['items'] = items
        return cast(bodies.RawList, rsp)

    async def watch(
            self,
            namespace: references.Namespace,
            options: Optional[options.WatchOptions] = None,
            *,
            stopper: Optional["asyncio.Future[Any]"] = None,
    ) -> AsyncGenerator[bodies.RawEvent, None]:
        """
        Watch the objects of the resource kind in a namespace (or cluster-wide).

        This is one streaming request: it ends when the server closes it
        (e.g. by timeout), or when the stream is closed client-side.
        Reconnecting is the caller's duty, usually with the last seen
        resource version, so that no events are lost in between.

        The "ERROR" events are escalated as `WatchingError`, except
        for "410 Gone", which is raised as `APIError` with status 410:
        the resource version is too old, and the caller should re-list.
        """
        params: Dict[str, str] = (options if options is not None else _DEFAULT_WATCH).as_params()
        if self.settings.watching.server_timeout is not None:
            params['timeoutSeconds'] = str(int(self.settings.watching.server_timeout))

        connect_timeout = (
            self.settings.watching.connect_timeout if self.settings.watching.connect_timeout is not None else
            self.settings.networking.connect_timeout if self.settings.networking.connect_timeout is not None else
            self.settings.networking.request_timeout
        )

        where = f'in {namespace!r}' if namespace is not None else 'cluster-wide'
        logger.debug(f"Starting the watch-stream for {self.resource!r} {where}.")
        stream = api.stream(
            url=self.resource.get_url(namespace=namespace, params=params),
            context=self.context,
            settings=self.settings,
            stopper=stopper,
            timeout=aiohttp.ClientTimeout(
                total=self.settings.watching.client_timeout,
                sock_connect=connect_timeout,
            ),
            logger=logger,
        )
        try:
            async for raw_input in stream:
                raw_type = raw_input.get('type') if isinstance(raw_input, dict) else None
                raw_object = raw_input.get('object') if isinstance(raw_input, dict) else None

                # "410 Gone" is for the "resource version too old" error: the caller must re-list.
                if raw_type == 'ERROR' and isinstance(raw_object, dict) and raw_object.get('code') == 410:
                    raise errors.APIError(str(raw_object.get('message', '')), status=410)

                # Other watch errors are fatal for this stream.
                if raw_type == 'ERROR':
                    raise errors.WatchingError(f"Error in the watch-stream: {raw_object}")

                # Bookmarks only move the resource version, there is no object change.
                if raw_type == 'BOOKMARK':
                    continue

                # Ensure that the event is something we understand and can handle.
                if raw_type not in ['ADDED', 'MODIFIED', 'DELETED']:
                    logger.warning(f"Ignoring an unsupported event type: {raw_input!r}")
                    continue

                yield cast(bodies.RawEvent, raw_input)
        finally:
            await stream.aclose()  # release the connection now, not on garbage collection.
            logger.debug(f"Stopping the watch-stream for {self.resource!r} {where}.")

    async def get(
            self,
            identifier: references.Identifier,
    ) -> bodies.RawBody:
        rsp = await api.get(
            url=self.resource.get_url(namespace=identifier.namespace, name=identifier.name),
            context=self.context,
            settings=self.settings,
            logger=logger,
        )
        return _as_body(rsp)

    async def create(
            self,
            identifier: references.Identifier,
            body: bodies.RawBody,
            options: Optional[options.CreateOptions] = None,
    ) -> bodies.RawBody:
        """
        Create an object. The identifier's namespace & name win over the body's.
        """
        body = _identified(body, identifier)
        params = options.as_params() if options is not None else None
        rsp = await api.post(
            url=self.resource.get_url(namespace=identifier.namespace, params=params),
            payload=body,
            context=self.context,
            settings=self.settings,
            logger=logger,
        )
        return _as_body(rsp)

    async def update(
            self,
            identifier: references.Identifier,
            body: bodies.RawBody,
            options: Optional[options.UpdateOptions] = None,
    ) -> bodies.RawBody:
        """
        Replace an object in full. The server rejects stale resource versions.
        """
        body = _identified(body, identifier)
        if options is not None and options.resource_version is not None:
            body['metadata']['resourceVersion'] = options.resource_version
        params = options.as_params() if options is not None else None
        subresource = options.subresource if options is not None else None
        rsp = await api.put(
            url=self.resource.get_url(namespace=identifier.namespace, name=identifier.name,
                                      subresource=subresource, params=params),
            payload=body,
            context=self.context,
            settings=self.settings,
            logger=logger,
        )
        return _as_body(rsp)

    async def patch(
            self,
            identifier: references.Identifier,
            request: patches.PatchRequest,
            options: Optional[options.PatchOptions] = None,
    ) -> bodies.RawBody:
        """
        Patch an object with either a merge-patch or a JSON patch, as requested.
        """
        params = options.as_params() if options is not None else None
        subresource = options.subresource if options is not None else None
        rsp = await api.patch(
            url=self.resource.get_url(namespace=identifier.namespace, name=identifier.name,
                                      subresource=subresource, params=params),
            headers={'Content-Type': request.content_type},
            payload=request.payload,
            context=self.context,
            settings=self.settings,
            logger=logger,
        )
        return _as_body(rsp)

    async def delete(
            self,
            identifier: references.Identifier,
            options: Optional[options.DeleteOptions] = None,
    ) -> None:
        """
        Delete an object. Absent objects are reported as `APINotFoundError`.
        """
        params = options.as_params() if options is not None else None
        payload = options.as_payload() if options is not None else None
        await api.delete(
            url=self.resource.get_url(namespace=identifier.namespace, name=identifier.name,
                                      params=params),
            payload=payload,
            context=self.context,
            settings=self.settings,
            logger=logger,
        )


_DEFAULT_WATCH = options.WatchOptions()


def _identified(body: bodies.RawBody, identifier: references.Identifier) -> bodies.RawBody:
    # Shallow copies only: the caller's body is not modified.
    result = cast(bodies.RawBody, dict(body))
    metadata = cast(bodies.RawMeta, dict(result.get('metadata') or {}))
    if identifier.namespace is not None:
        metadata['namespace'] = identifier.namespace
    if identifier.name:
        metadata['name'] = identifier.name
    result['metadata'] = metadata
    return result


def _as_body(rsp: Any) -> bodies.RawBody:
    if not isinstance(rsp, dict):
        raise errors.UnmarshalError(f"Expected an object, got {type(rsp).__name__}.")
    return cast(bodies.RawBody, rsp)
