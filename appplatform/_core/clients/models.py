"""
Typed objects shared by all kinds: the metadata, and the generic objects.

The per-kind Python classes are expected to have a ``metadata`` attribute
of type `ObjectMeta`, so that the clients can put the namespace & name there.
Everything else (spec, status, etc.) is up to the kind and its codec.

For the kinds without dedicated classes, `GenericObject` & `GenericList`
with `GenericCodec` can be used: they keep the spec & status as plain dicts.
"""
import dataclasses
import datetime
from typing import Any, Dict, List, Mapping, Optional, cast

import iso8601

from appplatform._cogs.structs import bodies


@dataclasses.dataclass
class ObjectMeta:
    name: str = ''
    namespace: Optional[str] = None
    generate_name: Optional[str] = None
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    generation: Optional[int] = None
    labels: Dict[str, str] = dataclasses.field(default_factory=dict)
    annotations: Dict[str, str] = dataclasses.field(default_factory=dict)
    creation_timestamp: Optional[datetime.datetime] = None

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "ObjectMeta":
        raw = raw if raw is not None else {}
        created = raw.get('creationTimestamp')
        return cls(
            name=raw.get('name', ''),
            namespace=raw.get('namespace'),
            generate_name=raw.get('generateName'),
            uid=raw.get('uid'),
            resource_version=raw.get('resourceVersion'),
            generation=raw.get('generation'),
            labels=dict(raw.get('labels') or {}),
            annotations=dict(raw.get('annotations') or {}),
            creation_timestamp=iso8601.parse_date(created) if created else None,
        )

    def as_raw(self) -> bodies.RawMeta:
        raw = bodies.RawMeta()
        if self.name:
            raw['name'] = self.name
        if self.namespace:
            raw['namespace'] = self.namespace
        if self.generate_name:
            raw['generateName'] = self.generate_name
        if self.uid:
            raw['uid'] = self.uid
        if self.resource_version:
            raw['resourceVersion'] = self.resource_version
        if self.generation is not None:
            raw['generation'] = self.generation
        if self.labels:
            raw['labels'] = dict(self.labels)
        if self.annotations:
            raw['annotations'] = dict(self.annotations)
        if self.creation_timestamp is not None:
            utc = self.creation_timestamp.astimezone(datetime.timezone.utc)
            raw['creationTimestamp'] = utc.strftime('%Y-%m-%dT%H:%M:%SZ')
        return raw


@dataclasses.dataclass
class GenericObject:
    api_version: str = ''
    kind: str = ''
    metadata: ObjectMeta = dataclasses.field(default_factory=ObjectMeta)
    spec: Dict[str, Any] = dataclasses.field(default_factory=dict)
    status: Dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class GenericList:
    api_version: str = ''
    kind: str = ''
    resource_version: Optional[str] = None
    continue_token: Optional[str] = None
    items: List[GenericObject] = dataclasses.field(default_factory=list)


class GenericCodec:
    """ A codec for any kind: the spec & status are passed through as dicts. """

    def encode(self, obj: GenericObject) -> bodies.RawBody:
        raw = bodies.RawBody(metadata=obj.metadata.as_raw())
        if obj.api_version:
            raw['apiVersion'] = obj.api_version
        if obj.kind:
            raw['kind'] = obj.kind
        if obj.spec:
            raw['spec'] = dict(obj.spec)
        if obj.status:
            raw['status'] = dict(obj.status)
        return raw

    def decode(self, raw: bodies.RawBody) -> GenericObject:
        return GenericObject(
            api_version=raw.get('apiVersion', ''),
            kind=raw.get('kind', ''),
            metadata=ObjectMeta.from_raw(raw.get('metadata')),
            spec=dict(raw.get('spec') or {}),
            status=dict(raw.get('status') or {}),
        )

    def decode_list(self, raw: bodies.RawList) -> GenericList:
        meta = cast(Mapping[str, Any], raw.get('metadata') or {})
        return GenericList(
            api_version=raw.get('apiVersion', ''),
            kind=raw.get('kind', ''),
            resource_version=meta.get('resourceVersion'),
            continue_token=meta.get('continue') or None,
            items=[self.decode(item) for item in raw.get('items') or []],
        )
