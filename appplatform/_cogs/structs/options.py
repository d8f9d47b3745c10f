"""
Per-call options of the object API requests, rendered as query parameters.

All options are optional; the defaults produce no query parameters at all.
"""
import dataclasses
import enum
from typing import Dict, Optional, Sequence


class PropagationPolicy(str, enum.Enum):
    ORPHAN = 'Orphan'
    BACKGROUND = 'Background'
    FOREGROUND = 'Foreground'


def _selector(filters: Sequence[str]) -> Optional[str]:
    return ','.join(filters) if filters else None


def _cleaned(params: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {key: val for key, val in params.items() if val is not None}


@dataclasses.dataclass(frozen=True)
class ListOptions:
    label_filters: Sequence[str] = ()
    field_selectors: Sequence[str] = ()
    limit: Optional[int] = None
    continue_token: Optional[str] = None
    resource_version: Optional[str] = None

    def as_params(self) -> Dict[str, str]:
        return _cleaned({
            'labelSelector': _selector(self.label_filters),
            'fieldSelector': _selector(self.field_selectors),
            'limit': str(self.limit) if self.limit is not None else None,
            'continue': self.continue_token,
            'resourceVersion': self.resource_version,
        })


@dataclasses.dataclass(frozen=True)
class WatchOptions:
    label_filters: Sequence[str] = ()
    field_selectors: Sequence[str] = ()
    resource_version: Optional[str] = None
    allow_bookmarks: bool = False

    def as_params(self) -> Dict[str, str]:
        return _cleaned({
            'watch': 'true',
            'labelSelector': _selector(self.label_filters),
            'fieldSelector': _selector(self.field_selectors),
            'resourceVersion': self.resource_version,
            'allowWatchBookmarks': 'true' if self.allow_bookmarks else None,
        })


@dataclasses.dataclass(frozen=True)
class CreateOptions:
    dry_run: bool = False

    def as_params(self) -> Dict[str, str]:
        return _cleaned({'dryRun': 'All' if self.dry_run else None})


@dataclasses.dataclass(frozen=True)
class UpdateOptions:
    """
    The resource version, if set, is put into the object's metadata:
    the server rejects the update with HTTP 409 if it holds another version.
    """
    resource_version: Optional[str] = None
    subresource: Optional[str] = None
    dry_run: bool = False

    def as_params(self) -> Dict[str, str]:
        return _cleaned({'dryRun': 'All' if self.dry_run else None})


@dataclasses.dataclass(frozen=True)
class PatchOptions:
    subresource: Optional[str] = None
    dry_run: bool = False

    def as_params(self) -> Dict[str, str]:
        return _cleaned({'dryRun': 'All' if self.dry_run else None})


@dataclasses.dataclass(frozen=True)
class DeleteOptions:
    propagation_policy: Optional[PropagationPolicy] = None
    resource_version: Optional[str] = None  # a precondition
    dry_run: bool = False

    def as_params(self) -> Dict[str, str]:
        return _cleaned({
            'propagationPolicy': self.propagation_policy.value if self.propagation_policy else None,
            'dryRun': 'All' if self.dry_run else None,
        })

    def as_payload(self) -> Optional[Dict[str, object]]:
        if self.resource_version is None:
            return None
        return {
            'apiVersion': 'v1',
            'kind': 'DeleteOptions',
            'preconditions': {'resourceVersion': self.resource_version},
        }
