"""
A registry of the object-model clients per kind.

The registry is built once (usually at startup) for all the kinds that
the application works with, and is then only read from. It is immutable:
adding a client produces a new registry, the original one stays as it was.
This makes it safe to share the registry between tasks without locks.
"""
from typing import Iterable, Iterator, Mapping, Optional

from appplatform._cogs.clients import auth, errors, objects
from appplatform._cogs.configs import configuration
from appplatform._core.clients import namespaced, typed


class Registry(Mapping["typed.Kind[typed.Object, object]", objects.ObjectClient]):
    """
    An immutable mapping of kinds to the object-model clients for them.

    Usage::

        registry = Registry.for_kinds([PLAYLIST_KIND], context=context)
        playlists = registry.namespaced(PLAYLIST_KIND, 'org-2')
        playlist = await playlists.get('my-playlist')
    """

    def __init__(
            self,
            clients: Optional[Mapping["typed.Kind[typed.Object, object]", objects.ObjectClient]] = None,
    ) -> None:
        super().__init__()
        self._clients = dict(clients or {})

    @classmethod
    def for_kinds(
            cls,
            kinds: Iterable["typed.Kind[typed.Object, object]"],
            *,
            context: auth.APIContext,
            settings: Optional[configuration.ClientSettings] = None,
    ) -> "Registry":
        """ Build the HTTP object-model clients for the kinds over one shared context. """
        return cls({
            kind: objects.HTTPObjectClient(kind.resource, context=context, settings=settings)
            for kind in kinds
        })

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {list(self._clients)!r}>'

    def __len__(self) -> int:
        return len(self._clients)

    def __iter__(self) -> Iterator["typed.Kind[typed.Object, object]"]:
        return iter(self._clients)

    def __getitem__(self, kind: "typed.Kind[typed.Object, object]") -> objects.ObjectClient:
        return self._clients[kind]

    def client_for(self, kind: "typed.Kind[typed.T, typed.L]") -> objects.ObjectClient:
        try:
            return self._clients[kind]  # type: ignore
        except KeyError:
            raise errors.UnregisteredKindError(f"No client is registered for {kind!r}.") from None

    def with_client(
            self,
            kind: "typed.Kind[typed.T, typed.L]",
            client: objects.ObjectClient,
    ) -> "Registry":
        """ Make a new registry with the client added (or replaced) for the kind. """
        clients = dict(self._clients)
        clients[kind] = client  # type: ignore
        return self.__class__(clients)

    def typed(self, kind: "typed.Kind[typed.T, typed.L]") -> "typed.TypedClient[typed.T, typed.L]":
        return typed.TypedClient(self.client_for(kind), kind)

    def namespaced(
            self,
            kind: "typed.Kind[typed.T, typed.L]",
            namespace: str,
    ) -> "namespaced.NamespacedClient[typed.T, typed.L]":
        return namespaced.NamespacedClient(self.typed(kind), namespace)
