"""
Namespace-scoped clients: typed clients bound to one tenant's namespace.

A namespaced client is what the applications usually work with: they serve
one tenant (an org or a stack), so the namespace is fixed once and for all,
and the calls only need the objects' names. The namespace cannot be changed
after construction; for another tenant, make another client.
"""
import asyncio
from typing import Any, AsyncGenerator, Generic, Optional

from appplatform._cogs.structs import namespaces, options, patches, references
from appplatform._core.clients import typed


class NamespacedClient(Generic[typed.T, typed.L]):

    def __init__(
            self,
            client: typed.TypedClient[typed.T, typed.L],
            namespace: str,
    ) -> None:
        super().__init__()
        self._client = client
        self._namespace = references.NamespaceName(namespace)

    @classmethod
    def for_tenant(
            cls,
            client: typed.TypedClient[typed.T, typed.L],
            tenant_id: int,
            *,
            org_mode: bool,
    ) -> "NamespacedClient[typed.T, typed.L]":
        """ Bind the client to the tenant's namespace as per the namespace policy. """
        return cls(client, namespaces.format_namespace(tenant_id, org_mode=org_mode))

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} for {self._client.kind!r} in {self._namespace!r}>'

    @property
    def namespace(self) -> references.NamespaceName:
        return self._namespace

    @property
    def client(self) -> typed.TypedClient[typed.T, typed.L]:
        return self._client

    def _identify(self, name: str) -> references.Identifier:
        return references.Identifier(namespace=self._namespace, name=name)

    def _identify_object(self, obj: typed.T) -> references.Identifier:
        # The objects without metadata fail later, when encoded, as all other malformed objects.
        metadata = getattr(obj, 'metadata', None)
        return self._identify(getattr(metadata, 'name', None) or '')

    async def list(
            self,
            options: Optional[options.ListOptions] = None,
    ) -> typed.L:
        return await self._client.list(self._namespace, options)

    async def watch(
            self,
            options: Optional[options.WatchOptions] = None,
            *,
            stopper: Optional["asyncio.Future[Any]"] = None,
    ) -> AsyncGenerator[typed.WatchEvent[typed.T], None]:
        stream = self._client.watch(self._namespace, options, stopper=stopper)
        try:
            async for event in stream:
                yield event
        finally:
            await stream.aclose()

    async def get(self, name: str) -> typed.T:
        return await self._client.get(self._identify(name))

    async def create(
            self,
            obj: typed.T,
            options: Optional[options.CreateOptions] = None,
    ) -> typed.T:
        return await self._client.create(self._identify_object(obj), obj, options)

    async def update(
            self,
            obj: typed.T,
            options: Optional[options.UpdateOptions] = None,
    ) -> typed.T:
        return await self._client.update(self._identify_object(obj), obj, options)

    async def patch(
            self,
            name: str,
            request: patches.PatchRequest,
            options: Optional[options.PatchOptions] = None,
    ) -> typed.T:
        return await self._client.patch(self._identify(name), request, options)

    async def delete(
            self,
            name: str,
            options: Optional[options.DeleteOptions] = None,
    ) -> None:
        await self._client.delete(self._identify(name), options)
