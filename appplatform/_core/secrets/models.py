"""
The objects of the secrets API: keepers and secure values.

A keeper is a storage backend for the secrets (e.g. an AWS secrets manager
in a specific region, optionally with an assumed role). A secure value is
a secret itself: either a plain value to be stored by the keeper, or
a reference to an already existing secret in the keeper.

The objects are converted to/from the JSON-compatible dicts exactly as
the API expects them: the optional fields are omitted when empty, while
the required ones are always present, even if empty.
"""
import dataclasses
from typing import Any, Dict, List, Mapping, Optional

API_GROUP = 'secret.grafana.app'
API_VERSION = 'v1beta1'
GROUP_VERSION = f'{API_GROUP}/{API_VERSION}'

KEEPER_KIND = 'Keeper'
SECURE_VALUE_KIND = 'SecureValue'


@dataclasses.dataclass
class ObjectMetadata:
    name: str = ''
    namespace: str = ''

    def as_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'namespace': self.namespace}

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "ObjectMetadata":
        raw = raw or {}
        return cls(name=raw.get('name') or '', namespace=raw.get('namespace') or '')


@dataclasses.dataclass
class KeeperAWSAssumeRole:
    assume_role_arn: str = ''
    external_id: str = ''

    def as_dict(self) -> Dict[str, Any]:
        return {'assumeRoleArn': self.assume_role_arn, 'externalID': self.external_id}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "KeeperAWSAssumeRole":
        return cls(
            assume_role_arn=raw.get('assumeRoleArn') or '',
            external_id=raw.get('externalID') or '',
        )


@dataclasses.dataclass
class KeeperAWS:
    region: str = ''
    assume_role: Optional[KeeperAWSAssumeRole] = None

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'region': self.region}
        if self.assume_role is not None:
            result['assumeRole'] = self.assume_role.as_dict()
        return result

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "KeeperAWS":
        assume_role = raw.get('assumeRole')
        return cls(
            region=raw.get('region') or '',
            assume_role=KeeperAWSAssumeRole.from_dict(assume_role) if assume_role is not None else None,
        )


@dataclasses.dataclass
class KeeperSpec:
    description: str = ''
    type: str = ''
    aws: Optional[KeeperAWS] = None

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.description:
            result['description'] = self.description
        if self.type:
            result['type'] = self.type
        if self.aws is not None:
            result['aws'] = self.aws.as_dict()
        return result

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "KeeperSpec":
        raw = raw or {}
        aws = raw.get('aws')
        return cls(
            description=raw.get('description') or '',
            type=raw.get('type') or '',
            aws=KeeperAWS.from_dict(aws) if aws is not None else None,
        )


@dataclasses.dataclass
class Keeper:
    """
    A keeper: where & how the secure values are stored.

    Keepers are created inactive; they must be activated explicitly
    with `SecretsClient.activate_keeper` to be used for the new values.
    """
    metadata: ObjectMetadata = dataclasses.field(default_factory=ObjectMetadata)
    spec: KeeperSpec = dataclasses.field(default_factory=KeeperSpec)
    api_version: str = ''
    kind: str = ''

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.api_version:
            result['apiVersion'] = self.api_version
        if self.kind:
            result['kind'] = self.kind
        result['metadata'] = self.metadata.as_dict()
        result['spec'] = self.spec.as_dict()
        return result

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Keeper":
        return cls(
            api_version=raw.get('apiVersion') or '',
            kind=raw.get('kind') or '',
            metadata=ObjectMetadata.from_dict(raw.get('metadata')),
            spec=KeeperSpec.from_dict(raw.get('spec')),
        )


@dataclasses.dataclass
class SecureValueSpec:
    description: str = ''
    value: str = ''
    ref: str = ''
    decrypters: List[str] = dataclasses.field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.description:
            result['description'] = self.description
        if self.value:
            result['value'] = self.value
        if self.ref:
            result['ref'] = self.ref
        if self.decrypters:
            result['decrypters'] = list(self.decrypters)
        return result

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "SecureValueSpec":
        raw = raw or {}
        return cls(
            description=raw.get('description') or '',
            value=raw.get('value') or '',
            ref=raw.get('ref') or '',
            decrypters=list(raw.get('decrypters') or []),
        )


@dataclasses.dataclass
class SecureValueStatus:
    keeper: str = ''  # assigned by the server, never computed locally.

    def as_dict(self) -> Dict[str, Any]:
        return {'keeper': self.keeper}

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "SecureValueStatus":
        raw = raw or {}
        return cls(keeper=raw.get('keeper') or '')


@dataclasses.dataclass
class SecureValue:
    """
    A secure value: a secret stored in a keeper.

    Either the value or the reference should be set, not both.
    The value is write-only: the server never returns it back.
    The decrypters are the services allowed to decrypt the value.
    """
    metadata: ObjectMetadata = dataclasses.field(default_factory=ObjectMetadata)
    spec: SecureValueSpec = dataclasses.field(default_factory=SecureValueSpec)
    status: SecureValueStatus = dataclasses.field(default_factory=SecureValueStatus)
    api_version: str = ''
    kind: str = ''

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.api_version:
            result['apiVersion'] = self.api_version
        if self.kind:
            result['kind'] = self.kind
        result['metadata'] = self.metadata.as_dict()
        result['spec'] = self.spec.as_dict()
        result['status'] = self.status.as_dict()
        return result

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SecureValue":
        return cls(
            api_version=raw.get('apiVersion') or '',
            kind=raw.get('kind') or '',
            metadata=ObjectMetadata.from_dict(raw.get('metadata')),
            spec=SecureValueSpec.from_dict(raw.get('spec')),
            status=SecureValueStatus.from_dict(raw.get('status')),
        )
