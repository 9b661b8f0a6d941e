"""Pod model and helpers for quality of service, scopes and resource names."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from tenantpolicy.api import (
    RESOURCE_CPU,
    RESOURCE_MEMORY,
    SCOPE_BEST_EFFORT,
    SCOPE_NOT_BEST_EFFORT,
    SCOPE_NOT_TERMINATING,
    SCOPE_PRIORITY_CLASS,
    SCOPE_SELECTOR_OP_DOES_NOT_EXIST,
    SCOPE_SELECTOR_OP_EXISTS,
    SCOPE_SELECTOR_OP_IN,
    SCOPE_SELECTOR_OP_NOT_IN,
    SCOPE_TERMINATING,
    ResourceList,
    ResourceName,
    ScopedResourceSelectorRequirement,
)
from tenantpolicy.quantity import Quantity

HUGE_PAGES_PREFIX = "hugepages-"
REQUESTS_HUGE_PAGES_PREFIX = "requests.hugepages-"
DEFAULT_RESOURCE_REQUESTS_PREFIX = "requests."
DEFAULT_NAMESPACE_PREFIX = "kubernetes.io/"

POD_FAILED = "Failed"
POD_SUCCEEDED = "Succeeded"

_QOS_RESOURCES = frozenset({RESOURCE_CPU, RESOURCE_MEMORY})

_QUALIFIED_NAME = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_QUALIFIED_NAME_MAX = 63
_DNS1123_SUBDOMAIN = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")
_DNS1123_SUBDOMAIN_MAX = 253
_LABEL_VALUE = re.compile(r"(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?")
_LABEL_VALUE_MAX = 63


class PodQOSClass(enum.Enum):
    GUARANTEED = "Guaranteed"
    BURSTABLE = "Burstable"
    BEST_EFFORT = "BestEffort"


@dataclass
class Container:
    name: str = ""
    requests: ResourceList = field(default_factory=dict)
    limits: ResourceList = field(default_factory=dict)


@dataclass
class Pod:
    """The parts of a pod that quota looks at."""

    name: str = ""
    namespace: str = ""
    containers: list[Container] = field(default_factory=list)
    init_containers: list[Container] = field(default_factory=list)
    priority_class_name: str = ""
    active_deadline_seconds: Optional[int] = None
    phase: str = ""
    deletion_timestamp: Optional[datetime] = None
    deletion_grace_period_seconds: Optional[int] = None


def _to_pod(obj: Any) -> Pod:
    if not isinstance(obj, Pod):
        raise TypeError(f"expect Pod, got {obj!r}")
    return obj


def is_prefixed_native_resource(name: ResourceName) -> bool:
    """Whether the name lies in the ``*kubernetes.io/`` namespace."""
    return DEFAULT_NAMESPACE_PREFIX in name


def is_native_resource(name: ResourceName) -> bool:
    """Whether the name is unprefixed or in the ``*kubernetes.io/`` namespace."""
    return "/" not in name or is_prefixed_native_resource(name)


def is_qualified_name(value: str) -> bool:
    """Whether value is a name with an optional DNS subdomain prefix."""
    parts = value.split("/")
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if (
            not prefix
            or len(prefix) > _DNS1123_SUBDOMAIN_MAX
            or _DNS1123_SUBDOMAIN.fullmatch(prefix) is None
        ):
            return False
    else:
        return False
    return (
        bool(name)
        and len(name) <= _QUALIFIED_NAME_MAX
        and _QUALIFIED_NAME.fullmatch(name) is not None
    )


def is_extended_resource_name(name: ResourceName) -> bool:
    """Whether the name is a valid extended resource name outside the native namespace."""
    if is_native_resource(name) or name.startswith(DEFAULT_RESOURCE_REQUESTS_PREFIX):
        return False
    return is_qualified_name(DEFAULT_RESOURCE_REQUESTS_PREFIX + name)


def _add_positive(totals: ResourceList, resources: ResourceList) -> set[str]:
    zero = Quantity()
    found: set[str] = set()
    for name, quantity in resources.items():
        if name not in _QOS_RESOURCES or not quantity > zero:
            continue
        found.add(name)
        totals[name] = totals[name] + quantity if name in totals else quantity
    return found


def get_pod_qos(pod: Pod) -> PodQOSClass:
    """The quality of service class of a pod.

    Best effort: no container sets cpu or memory requests or limits.
    Guaranteed: every container limits cpu and memory, and requests equal limits.
    Burstable: anything else.
    """
    requests: ResourceList = {}
    limits: ResourceList = {}
    guaranteed = True
    for container in (*pod.containers, *pod.init_containers):
        _add_positive(requests, container.requests)
        found_limits = _add_positive(limits, container.limits)
        if not _QOS_RESOURCES <= found_limits:
            guaranteed = False

    if not requests and not limits:
        return PodQOSClass.BEST_EFFORT
    if guaranteed:
        guaranteed = all(
            name in limits and limits[name] == request for name, request in requests.items()
        )
    if guaranteed and len(requests) == len(limits):
        return PodQOSClass.GUARANTEED
    return PodQOSClass.BURSTABLE


def is_best_effort(pod: Pod) -> bool:
    return get_pod_qos(pod) is PodQOSClass.BEST_EFFORT


def is_terminating(pod: Pod) -> bool:
    """Whether the pod has a non-negative active deadline."""
    return pod.active_deadline_seconds is not None and pod.active_deadline_seconds >= 0


@dataclass(frozen=True)
class LabelRequirement:
    """One label selector requirement: a key, an operator and values."""

    key: str
    operator: str
    values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not is_qualified_name(self.key):
            raise ValueError(f"invalid label key {self.key!r}")
        if self.operator in (SCOPE_SELECTOR_OP_IN, SCOPE_SELECTOR_OP_NOT_IN):
            if not self.values:
                raise ValueError("for 'in', 'notin' operators, values set can't be empty")
        elif self.operator in (SCOPE_SELECTOR_OP_EXISTS, SCOPE_SELECTOR_OP_DOES_NOT_EXIST):
            if self.values:
                raise ValueError("values set must be empty for exists and does not exist")
        else:
            raise ValueError(f"operator {self.operator!r} is not recognized")
        for value in self.values:
            if len(value) > _LABEL_VALUE_MAX or _LABEL_VALUE.fullmatch(value) is None:
                raise ValueError(f"invalid label value {value!r}")

    def matches(self, labels: Mapping[str, str]) -> bool:
        if self.operator == SCOPE_SELECTOR_OP_IN:
            return self.key in labels and labels[self.key] in self.values
        if self.operator == SCOPE_SELECTOR_OP_NOT_IN:
            return self.key not in labels or labels[self.key] not in self.values
        if self.operator == SCOPE_SELECTOR_OP_EXISTS:
            return self.key in labels
        return self.key not in labels


def scoped_resource_selector_requirement_as_selector(
    requirement: ScopedResourceSelectorRequirement,
) -> LabelRequirement:
    """Convert a scope selector requirement into a label requirement."""
    valid = (
        SCOPE_SELECTOR_OP_IN,
        SCOPE_SELECTOR_OP_NOT_IN,
        SCOPE_SELECTOR_OP_EXISTS,
        SCOPE_SELECTOR_OP_DOES_NOT_EXIST,
    )
    if requirement.operator not in valid:
        raise ValueError(f'"{requirement.operator}" is not a valid scope selector operator')
    return LabelRequirement(requirement.scope_name, requirement.operator, tuple(requirement.values))


def _pod_matches_selector(pod: Pod, selector: ScopedResourceSelectorRequirement) -> bool:
    try:
        requirement = scoped_resource_selector_requirement_as_selector(selector)
    except ValueError as exc:
        raise ValueError(f"failed to parse and convert selector: {exc}") from exc
    labels = {SCOPE_PRIORITY_CLASS: pod.priority_class_name} if pod.priority_class_name else {}
    return requirement.matches(labels)


def pod_matches_scope(selector: ScopedResourceSelectorRequirement, obj: Any) -> bool:
    """Whether a pod falls within a quota scope."""
    pod = _to_pod(obj)
    scope = selector.scope_name
    if scope == SCOPE_TERMINATING:
        return is_terminating(pod)
    if scope == SCOPE_NOT_TERMINATING:
        return not is_terminating(pod)
    if scope == SCOPE_BEST_EFFORT:
        return is_best_effort(pod)
    if scope == SCOPE_NOT_BEST_EFFORT:
        return not is_best_effort(pod)
    if scope == SCOPE_PRIORITY_CLASS:
        return _pod_matches_selector(pod, selector)
    return False


def quota_v1_pod(pod: Pod, now: Optional[datetime] = None) -> bool:
    """Whether the pod still counts against compute quota.

    Pods in a terminal phase, and pods whose deletion grace period has run out,
    are not charged.
    """
    if pod.phase in (POD_FAILED, POD_SUCCEEDED):
        return False
    if pod.deletion_timestamp is not None and pod.deletion_grace_period_seconds is not None:
        if now is None:
            now = datetime.now(timezone.utc) if pod.deletion_timestamp.tzinfo else datetime.now()
        deadline = pod.deletion_timestamp + timedelta(seconds=pod.deletion_grace_period_seconds)
        if now > deadline:
            return False
    return True