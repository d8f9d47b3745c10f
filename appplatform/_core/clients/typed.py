"""
Typed clients: one generic implementation of CRUD, listing & watching
for all resource kinds, parametrized by the object & list types.

Every kind brings its own codec: a pair of functions to convert the typed
objects to/from the raw bodies. The typed client itself knows nothing about
the kind's content, except for the object metadata (namespaces & names).
The actual API calls are delegated to an object-model client for the kind.

Usage::

    client = TypedClient(object_client, PLAYLIST_KIND)
    playlist = await client.get(Identifier('default', 'my-playlist'))
"""
import asyncio
import dataclasses
import enum
from typing import Any, AsyncGenerator, Callable, Generic, Optional, TypeVar

from typing_extensions import Protocol

from appplatform._cogs.clients import errors, objects
from appplatform._cogs.structs import bodies, options, patches, references
from appplatform._core.clients import models
from appplatform._core.engines import loggers


class Object(Protocol):
    metadata: models.ObjectMeta


T = TypeVar('T', bound=Object)
L = TypeVar('L')
_R = TypeVar('_R')


class Codec(Protocol[T, L]):
    """ A per-kind pair of encode/decode functions for the objects & lists. """

    def encode(self, obj: T) -> bodies.RawBody:
        ...

    def decode(self, raw: bodies.RawBody) -> T:
        ...

    def decode_list(self, raw: bodies.RawList) -> L:
        ...


@dataclasses.dataclass(frozen=True, eq=False)
class Kind(Generic[T, L]):
    """
    A type identity of a resource: the API coordinates plus the codec.

    Kinds are equal if their API group, version & kind name are equal,
    regardless of the codecs: this is what the registry uses as the key.
    """
    group: str
    version: str
    kind: str
    plural: str
    codec: Codec[T, L]
    namespaced: bool = True

    def __hash__(self) -> int:
        return hash((self.group, self.version, self.kind))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Kind):
            return (self.group, self.version, self.kind) == (other.group, other.version, other.kind)
        else:
            return NotImplemented

    def __repr__(self) -> str:
        return f'{self.kind}.{self.version}.{self.group}'.strip('.')

    @property
    def api_version(self) -> str:
        return self.resource.api_version

    @property
    def resource(self) -> references.Resource:
        return references.Resource(
            group=self.group,
            version=self.version,
            plural=self.plural,
            kind=self.kind,
            namespaced=self.namespaced,
        )

    @classmethod
    def generic(
            cls,
            group: str,
            version: str,
            kind: str,
            plural: str,
            *,
            namespaced: bool = True,
    ) -> "Kind[models.GenericObject, models.GenericList]":
        return Kind(group=group, version=version, kind=kind, plural=plural,
                    codec=models.GenericCodec(), namespaced=namespaced)


class EventType(str, enum.Enum):
    ADDED = 'ADDED'
    MODIFIED = 'MODIFIED'
    DELETED = 'DELETED'


@dataclasses.dataclass(frozen=True)
class WatchEvent(Generic[T]):
    type: EventType
    object: T


class TypedClient(Generic[T, L]):
    """
    A typed client for one kind over an untyped object-model client.

    All failures are raised as `ResourceError` with the action, the kind,
    and the object's identifier; the original error is its ``__cause__``:
    e.g. `APINotFoundError`, `APIConflictError`, `MarshalError`, etc.
    """

    def __init__(
            self,
            client: objects.ObjectClient,
            kind: Kind[T, L],
    ) -> None:
        super().__init__()
        self._client = client
        self._kind = kind

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} for {self._kind!r}>'

    @property
    def kind(self) -> Kind[T, L]:
        return self._kind

    async def list(
            self,
            namespace: references.Namespace,
            options: Optional[options.ListOptions] = None,
    ) -> L:
        try:
            raw = await self._client.list(namespace, options)
            return self._decode(self._kind.codec.decode_list, raw)
        except errors.ClientError as e:
            raise self._failure('list', e, namespace=namespace) from e

    async def watch(
            self,
            namespace: references.Namespace,
            options: Optional[options.WatchOptions] = None,
            *,
            stopper: Optional["asyncio.Future[Any]"] = None,
    ) -> AsyncGenerator[WatchEvent[T], None]:
        """
        Stream the change events of the objects in the namespace.

        The stream goes until the server closes it, or until the stopper is done.
        To stop it earlier, either break the ``async for`` cycle and ``aclose()``
        the stream, or cancel the consuming task: the connection is then released.
        """
        stream = self._client.watch(namespace, options, stopper=stopper)
        try:
            async for raw_event in stream:
                yield self._decode(self._decode_event, raw_event)
        except errors.ClientError as e:
            raise self._failure('watch', e, namespace=namespace) from e
        finally:
            await stream.aclose()

    async def get(
            self,
            identifier: references.Identifier,
    ) -> T:
        try:
            raw = await self._client.get(identifier)
            return self._decode(self._kind.codec.decode, raw)
        except errors.ClientError as e:
            raise self._failure('get', e, identifier=identifier) from e

    async def create(
            self,
            identifier: references.Identifier,
            obj: T,
            options: Optional[options.CreateOptions] = None,
    ) -> T:
        """
        Create the object, and return it as stored by the server.

        The object's namespace (and the name, if the identifier has one)
        is overwritten by the identifier's before submission.
        """
        logger = loggers.ObjectLogger(kind=self._kind.kind, identifier=identifier)
        logger.debug(f"Creating {self._kind!r}.")
        try:
            body = self._encode(obj, identifier)
            raw = await self._client.create(identifier, body, options)
            return self._decode(self._kind.codec.decode, raw)
        except errors.ClientError as e:
            raise self._failure('create', e, identifier=identifier) from e

    async def update(
            self,
            identifier: references.Identifier,
            obj: T,
            options: Optional[options.UpdateOptions] = None,
    ) -> T:
        """
        Replace the object in full, and return it as stored by the server.

        The object must carry the resource version as the server holds it
        (or it must be given in the options), or the update fails with a conflict.
        """
        logger = loggers.ObjectLogger(kind=self._kind.kind, identifier=identifier)
        logger.debug(f"Updating {self._kind!r}.")
        try:
            body = self._encode(obj, identifier)
            raw = await self._client.update(identifier, body, options)
            return self._decode(self._kind.codec.decode, raw)
        except errors.ClientError as e:
            raise self._failure('update', e, identifier=identifier) from e

    async def patch(
            self,
            identifier: references.Identifier,
            request: patches.PatchRequest,
            options: Optional[options.PatchOptions] = None,
    ) -> T:
        logger = loggers.ObjectLogger(kind=self._kind.kind, identifier=identifier)
        logger.debug(f"Patching {self._kind!r} with a {request.type.name.lower()} patch.")
        try:
            raw = await self._client.patch(identifier, request, options)
            return self._decode(self._kind.codec.decode, raw)
        except errors.ClientError as e:
            raise self._failure('patch', e, identifier=identifier) from e

    async def delete(
            self,
            identifier: references.Identifier,
            options: Optional[options.DeleteOptions] = None,
    ) -> None:
        logger = loggers.ObjectLogger(kind=self._kind.kind, identifier=identifier)
        logger.debug(f"Deleting {self._kind!r}.")
        try:
            await self._client.delete(identifier, options)
        except errors.ClientError as e:
            raise self._failure('delete', e, identifier=identifier) from e

    def _encode(self, obj: T, identifier: references.Identifier) -> bodies.RawBody:
        try:
            obj.metadata.namespace = identifier.namespace
            if identifier.name:
                obj.metadata.name = identifier.name
            body = self._kind.codec.encode(obj)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise errors.MarshalError(f"failed to encode {self._kind!r}: {e}") from e
        body.setdefault('apiVersion', self._kind.api_version)
        body.setdefault('kind', self._kind.kind)
        return body

    def _decode(self, fn: Callable[[Any], _R], raw: Any) -> _R:
        try:
            return fn(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise errors.UnmarshalError(f"failed to decode {self._kind!r}: {e}") from e

    def _decode_event(self, raw_event: bodies.RawEvent) -> WatchEvent[T]:
        type_ = EventType(raw_event['type'])
        obj = self._kind.codec.decode(raw_event['object'])
        return WatchEvent(type=type_, object=obj)

    def _failure(
            self,
            action: str,
            exc: errors.ClientError,
            *,
            namespace: references.Namespace = None,
            identifier: Optional[references.Identifier] = None,
    ) -> errors.ResourceError:
        namespace = identifier.namespace if identifier is not None else namespace
        name = identifier.name if identifier is not None else None
        what = f"{self._kind.kind} {name!r}" if name else f"{self._kind.kind} objects"
        where = f" in {namespace!r}" if namespace else ""
        return errors.ResourceError(
            f"failed to {action} {what}{where}: {exc}",
            action=action,
            kind=self._kind.kind,
            name=name,
            namespace=namespace,
        )
