"""
All the raw structures coming from/to the API servers.

Everything marked "raw" is a plain unwrapped unprocessed data as JSON-decoded
from the API, usually as retrieved in the watching or fetching API calls.
"Input" is a parsed JSON as is, while "event" is an "input" without "errors".
All non-used payload falls into `Any`, and is not type-checked.

The typed objects are built from these raw structures by the per-kind codecs
(see `appplatform._core.clients.typed`), never by the raw clients themselves.
"""
from typing import Any, List, Mapping, Union

from typing_extensions import Literal, TypedDict

Labels = Mapping[str, str]
Annotations = Mapping[str, str]

RawInputType = Literal['ADDED', 'MODIFIED', 'DELETED', 'BOOKMARK', 'ERROR']
RawEventType = Literal['ADDED', 'MODIFIED', 'DELETED']


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    generateName: str
    namespace: str
    labels: Labels
    annotations: Annotations
    finalizers: List[str]
    resourceVersion: str
    generation: int
    deletionTimestamp: str
    creationTimestamp: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


# The functional syntax: `continue` is a Python keyword.
RawListMeta = TypedDict('RawListMeta', {
    'resourceVersion': str,
    'continue': str,
    'remainingItemCount': int,
}, total=False)

RawList = TypedDict('RawList', {
    'apiVersion': str,
    'kind': str,
    'metadata': RawListMeta,
    'items': List[RawBody],
}, total=False)


# A special payload for type==ERROR (this is not a connection or client error).
class RawError(TypedDict, total=False):
    apiVersion: str     # usually: Literal['v1']
    kind: str           # usually: Literal['Status']
    code: int
    reason: str
    status: str
    message: str


# As received from the stream before processing the errors and special cases.
class RawInput(TypedDict, total=True):
    type: RawInputType
    object: Union[RawBody, RawError]


# As passed to the typed clients after processing the errors and special cases.
class RawEvent(TypedDict, total=True):
    type: RawEventType
    object: RawBody
