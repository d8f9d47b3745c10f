"""
All the structures needed for patching the objects.

Two patch flavours are supported, as the API servers understand them:

* A JSON merge-patch (RFC 7386), i.e. a simple dictionary with field overrides,
  and ``None`` for field deletions.
* A JSON patch (RFC 6902), i.e. a list of operations with JSON pointers.

The flavour is a property of the patch request, not of the client:
the clients send whatever is requested with the proper content type.
"""
import collections.abc
import dataclasses
import enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from typing_extensions import Literal, TypedDict

from appplatform._cogs.structs import bodies

JSONPatchOp = Literal["add", "replace", "remove", "move", "copy", "test"]


def _escaped_path(keys: List[str]) -> str:
    """Provides an appropriately escaped path for JSON Patches.

    See https://datatracker.ietf.org/doc/html/rfc6901#section-3 for more details.
    """
    return '/'.join(map(lambda key: key.replace('~', '~0').replace('/', '~1'), keys))


class JSONPatchItem(TypedDict, total=False):
    op: JSONPatchOp
    path: str
    value: Optional[Any]


JSONPatch = List[JSONPatchItem]


class PatchType(str, enum.Enum):
    """ Patch flavours, as identified by their content types. """
    MERGE = 'application/merge-patch+json'
    JSON = 'application/json-patch+json'


class Patch(Dict[str, Any]):
    """
    A merge-patch: a dict of the fields to override, with ``None`` to delete.

    If the original body is known, the merge-patch can be converted
    to an equivalent JSON patch, with the "add" operations for the fields
    absent in the original, and "replace" operations for the existing ones.
    """

    def __init__(
        self,
        __src: Optional[Mapping[str, Any]] = None,
        body: Optional[bodies.RawBody] = None,
    ) -> None:
        super().__init__(__src or {})
        self._original = body

    def as_json_patch(self) -> JSONPatch:
        return [] if not self else self._as_json_patch(self, keys=[''])

    def _as_json_patch(self, value: object, keys: List[str]) -> JSONPatch:
        result: JSONPatch = []
        if value is None:
            result.append(JSONPatchItem(op='remove', path=_escaped_path(keys)))
        elif len(keys) > 1 and self._original and not self._is_in_original_path(keys):
            result.append(JSONPatchItem(op='add', path=_escaped_path(keys), value=value))
        elif isinstance(value, collections.abc.Mapping) and value:
            for key, val in value.items():
                result.extend(self._as_json_patch(val, keys + [key]))
        else:
            result.append(JSONPatchItem(op='replace', path=_escaped_path(keys), value=value))
        return result

    def _is_in_original_path(self, keys: List[str]) -> bool:
        _search: Any = self._original
        for key in keys:
            if key == '':
                continue
            try:
                _search = _search[key]
            except (KeyError, TypeError):
                return False
        return True


@dataclasses.dataclass(frozen=True)
class PatchRequest:
    """
    A patch to send, together with its flavour.

    Usage::

        PatchRequest.merge({'spec': {'title': 'New title'}})
        PatchRequest.json([{'op': 'replace', 'path': '/spec/title', 'value': 'New'}])
    """
    payload: Union[Mapping[str, Any], Sequence[JSONPatchItem]]
    type: PatchType = PatchType.MERGE

    @classmethod
    def merge(cls, patch: Mapping[str, Any]) -> "PatchRequest":
        return cls(payload=dict(patch), type=PatchType.MERGE)

    @classmethod
    def json(cls, operations: Sequence[JSONPatchItem]) -> "PatchRequest":
        return cls(payload=list(operations), type=PatchType.JSON)

    def __post_init__(self) -> None:
        if self.type is PatchType.MERGE and not isinstance(self.payload, collections.abc.Mapping):
            raise TypeError("Merge-patches must be mappings of the fields to override.")
        if self.type is PatchType.JSON and isinstance(self.payload, collections.abc.Mapping):
            raise TypeError("JSON patches must be sequences of the patch operations.")

    @property
    def content_type(self) -> str:
        return self.type.value
