"""Data types shared by the quota evaluators and admission checks."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from tenantpolicy.quantity import Quantity

ResourceName = str
ResourceList = dict[str, Quantity]

RESOURCE_CPU = "cpu"
RESOURCE_MEMORY = "memory"
RESOURCE_STORAGE = "storage"
RESOURCE_EPHEMERAL_STORAGE = "ephemeral-storage"
RESOURCE_PODS = "pods"
RESOURCE_SERVICES = "services"
RESOURCE_SERVICES_NODE_PORTS = "services.nodeports"
RESOURCE_SERVICES_LOAD_BALANCERS = "services.loadbalancers"
RESOURCE_PERSISTENT_VOLUME_CLAIMS = "persistentvolumeclaims"
RESOURCE_CONFIG_MAPS = "configmaps"
RESOURCE_SECRETS = "secrets"
RESOURCE_QUOTAS = "resourcequotas"
RESOURCE_REPLICATION_CONTROLLERS = "replicationcontrollers"
RESOURCE_REQUESTS_CPU = "requests.cpu"
RESOURCE_REQUESTS_MEMORY = "requests.memory"
RESOURCE_REQUESTS_STORAGE = "requests.storage"
RESOURCE_REQUESTS_EPHEMERAL_STORAGE = "requests.ephemeral-storage"
RESOURCE_LIMITS_CPU = "limits.cpu"
RESOURCE_LIMITS_MEMORY = "limits.memory"
RESOURCE_LIMITS_EPHEMERAL_STORAGE = "limits.ephemeral-storage"

SCOPE_TERMINATING = "Terminating"
SCOPE_NOT_TERMINATING = "NotTerminating"
SCOPE_BEST_EFFORT = "BestEffort"
SCOPE_NOT_BEST_EFFORT = "NotBestEffort"
SCOPE_PRIORITY_CLASS = "PriorityClass"

SCOPE_SELECTOR_OP_IN = "In"
SCOPE_SELECTOR_OP_NOT_IN = "NotIn"
SCOPE_SELECTOR_OP_EXISTS = "Exists"
SCOPE_SELECTOR_OP_DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True)
class GroupResource:
    group: str
    resource: str


@dataclass(frozen=True)
class GroupVersionResource:
    group: str
    version: str
    resource: str

    def group_resource(self) -> GroupResource:
        return GroupResource(self.group, self.resource)


class Operation(enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


@dataclass
class Attributes:
    """What an admission request is doing and to which object."""

    operation: Operation
    resource: GroupVersionResource
    namespace: str = ""
    name: str = ""
    subresource: str = ""
    obj: Any = None
    old_obj: Any = None
    dry_run: bool = False


@dataclass(frozen=True)
class ScopedResourceSelectorRequirement:
    scope_name: str
    operator: str = SCOPE_SELECTOR_OP_EXISTS
    values: tuple[str, ...] = ()


@dataclass
class ScopeSelector:
    match_expressions: list[ScopedResourceSelectorRequirement] = field(default_factory=list)


@dataclass
class ResourceQuota:
    """A quota document; ``hard`` and ``used`` hold its observed status."""

    name: str
    namespace: str = ""
    scopes: list[str] = field(default_factory=list)
    scope_selector: Optional[ScopeSelector] = None
    hard: ResourceList = field(default_factory=dict)
    used: ResourceList = field(default_factory=dict)
    resource_version: str = ""

    def scope_selectors(self) -> list[ScopedResourceSelectorRequirement]:
        """All scope requirements of the quota, plain scopes first."""
        selectors = [
            ScopedResourceSelectorRequirement(scope, SCOPE_SELECTOR_OP_EXISTS)
            for scope in self.scopes
        ]
        if self.scope_selector is not None:
            selectors.extend(self.scope_selector.match_expressions)
        return selectors


@dataclass
class UsageStatsOptions:
    namespace: str = ""
    scopes: list[str] = field(default_factory=list)
    resources: list[ResourceName] = field(default_factory=list)
    scope_selector: Optional[ScopeSelector] = None


@dataclass
class UsageStats:
    used: ResourceList = field(default_factory=dict)


@dataclass
class LimitedResource:
    """A resource whose consumption needs a covering quota."""

    resource: str
    api_group: str = ""
    match_contains: list[str] = field(default_factory=list)
    match_scopes: list[ScopedResourceSelectorRequirement] = field(default_factory=list)


@dataclass
class Configuration:
    limited_resources: list[LimitedResource] = field(default_factory=list)


@runtime_checkable
class Evaluator(Protocol):
    """Knows how to evaluate quota usage for one group resource."""

    group_resource: GroupResource

    def constraints(self, required: list[ResourceName], item: Any) -> None:
        """Raise if a required resource is missing on the item."""

    def handles(self, attributes: Attributes) -> bool:
        """Whether the operation may change quota usage."""

    def matches(self, resource_quota: ResourceQuota, item: Any) -> bool:
        """Whether the quota applies to the item."""

    def matching_scopes(
        self, item: Any, scopes: list[ScopedResourceSelectorRequirement]
    ) -> list[ScopedResourceSelectorRequirement]:
        """The scopes that the item matches."""

    def uncovered_quota_scopes(
        self,
        limited_scopes: list[ScopedResourceSelectorRequirement],
        matched_quota_scopes: list[ScopedResourceSelectorRequirement],
    ) -> list[ScopedResourceSelectorRequirement]:
        """Limited scopes with no covering quota scope."""

    def matching_resources(self, names: list[ResourceName]) -> list[ResourceName]:
        """The subset of names this evaluator tracks."""

    def usage(self, item: Any) -> ResourceList:
        """Usage charged for one object."""

    def usage_stats(self, options: UsageStatsOptions) -> UsageStats:
        """Aggregate usage over all objects in a namespace."""


ListerForResource = Callable[[GroupVersionResource], Any]