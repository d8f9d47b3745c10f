"""
The main module of the App Platform clients: all exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the package's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from appplatform._cogs.configs.configuration import (
    ClientSettings,
    NetworkingSettings,
    WatchingSettings,
)
from appplatform._cogs.helpers.typedefs import (
    Logger,
)
from appplatform._cogs.helpers.versions import (
    version as __version__,
)
from appplatform._cogs.structs.credentials import (
    ConnectionInfo,
)
from appplatform._cogs.structs.namespaces import (
    DEFAULT_ORG_ID,
    DEFAULT_ORG_NAMESPACE,
    NamespaceError,
    org_namespace,
    cloud_namespace,
    format_namespace,
    namespace_for_client,
)
from appplatform._cogs.structs.references import (
    Identifier,
    NamespaceName,
    Resource,
)
from appplatform._cogs.structs.options import (
    PropagationPolicy,
    ListOptions,
    WatchOptions,
    CreateOptions,
    UpdateOptions,
    PatchOptions,
    DeleteOptions,
)
from appplatform._cogs.structs.patches import (
    Patch,
    PatchType,
    PatchRequest,
)
from appplatform._cogs.clients.auth import (
    APIContext,
)
from appplatform._cogs.clients.errors import (
    ClientError,
    URLParseError,
    MarshalError,
    UnmarshalError,
    APITransportError,
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
    ResourceError,
    UnregisteredKindError,
    WatchingError,
    caused_by,
)
from appplatform._cogs.clients.objects import (
    ObjectClient,
    HTTPObjectClient,
)
from appplatform._core.engines.loggers import (
    LogFormat,
    ObjectLogger,
    configure,
)
from appplatform._core.clients.models import (
    ObjectMeta,
    GenericObject,
    GenericList,
    GenericCodec,
)
from appplatform._core.clients.typed import (
    Codec,
    Kind,
    EventType,
    WatchEvent,
    TypedClient,
)
from appplatform._core.clients.namespaced import (
    NamespacedClient,
)
from appplatform._core.clients.registry import (
    Registry,
)
from appplatform._core.secrets.models import (
    ObjectMetadata,
    Keeper,
    KeeperSpec,
    KeeperAWS,
    KeeperAWSAssumeRole,
    SecureValue,
    SecureValueSpec,
    SecureValueStatus,
)
from appplatform._core.secrets.client import (
    SecretsClient,
)

__all__ = [
    '__version__',
    'configure', 'LogFormat', 'ObjectLogger', 'Logger',
    'ClientSettings', 'NetworkingSettings', 'WatchingSettings',
    'ConnectionInfo', 'APIContext',
    'DEFAULT_ORG_ID', 'DEFAULT_ORG_NAMESPACE', 'NamespaceError',
    'org_namespace', 'cloud_namespace', 'format_namespace', 'namespace_for_client',
    'Identifier', 'NamespaceName', 'Resource',
    'PropagationPolicy',
    'ListOptions', 'WatchOptions', 'CreateOptions',
    'UpdateOptions', 'PatchOptions', 'DeleteOptions',
    'Patch', 'PatchType', 'PatchRequest',
    'ClientError', 'URLParseError', 'MarshalError', 'UnmarshalError',
    'APITransportError', 'APIError',
    'APIUnauthorizedError', 'APIForbiddenError', 'APINotFoundError', 'APIConflictError',
    'ResourceError', 'UnregisteredKindError', 'WatchingError', 'caused_by',
    'ObjectClient', 'HTTPObjectClient',
    'ObjectMeta', 'GenericObject', 'GenericList', 'GenericCodec',
    'Codec', 'Kind', 'EventType', 'WatchEvent',
    'TypedClient', 'NamespacedClient', 'Registry',
    'ObjectMetadata', 'Keeper', 'KeeperSpec', 'KeeperAWS', 'KeeperAWSAssumeRole',
    'SecureValue', 'SecureValueSpec', 'SecureValueStatus',
    'SecretsClient',
]
