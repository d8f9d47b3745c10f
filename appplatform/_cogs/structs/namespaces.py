"""
Namespace derivation for the tenants: organizations and cloud stacks.

Every tenant's objects live in a namespace computed from the tenant's id.
The namespaces are never chosen freely by the callers: they are derived
deterministically from the tenant id and the tenant mode.

There are two modes:

* Organizations of a self-hosted server: ``org-{id}``, with a special case
  of the first (default) organization being in the ``default`` namespace.
* Stacks of the cloud offering: ``stacks-{id}``.

The prefixes of the modes are disjoint, so the namespaces of an organization
and of a stack never collide, even if their ids are the same.
Within a mode, distinct ids always produce distinct namespaces.
"""
from typing import Optional

from appplatform._cogs.structs import references

DEFAULT_ORG_ID = 1
DEFAULT_ORG_NAMESPACE = references.NamespaceName('default')

_INT64_MIN = -2 ** 63
_INT64_MAX = 2 ** 63 - 1


class NamespaceError(ValueError):
    """ Raised when a namespace cannot be derived from the given ids. """


def _check_tenant_id(tenant_id: int) -> None:
    # bool is a subclass of int, but `True` as an org id is surely a mistake.
    if not isinstance(tenant_id, int) or isinstance(tenant_id, bool):
        raise TypeError(f"Tenant ids must be integers, got {tenant_id!r}.")
    if not _INT64_MIN <= tenant_id <= _INT64_MAX:
        raise ValueError(f"Tenant ids must fit into 64-bit signed integers, got {tenant_id!r}.")


def org_namespace(org_id: int) -> references.NamespaceName:
    _check_tenant_id(org_id)
    if org_id == DEFAULT_ORG_ID:
        return DEFAULT_ORG_NAMESPACE
    return references.NamespaceName(f'org-{org_id}')


def cloud_namespace(stack_id: int) -> references.NamespaceName:
    _check_tenant_id(stack_id)
    return references.NamespaceName(f'stacks-{stack_id}')


def format_namespace(tenant_id: int, *, org_mode: bool) -> references.NamespaceName:
    """
    Map a tenant id to its namespace: an organization's or a cloud stack's.
    """
    return org_namespace(tenant_id) if org_mode else cloud_namespace(tenant_id)


def namespace_for_client(
        *,
        org_id: Optional[int] = None,
        stack_id: Optional[int] = None,
) -> references.NamespaceName:
    """
    Select the namespace for a client configured with either or both ids.

    The org id is usually set to 1 by default even for the cloud stacks.
    So the stack id, if set, takes precedence; otherwise, the org id is used.
    Zero and negative ids are treated as "not set".
    """
    if stack_id is not None and stack_id > 0:
        return cloud_namespace(stack_id)
    elif org_id is not None and org_id > 0:
        return org_namespace(org_id)
    else:
        raise NamespaceError("Expected either an org id (for self-hosted servers) "
                             "or a stack id (for cloud stacks) to be set.")
