"""Arithmetic and set operations over resource lists."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from tenantpolicy.api import ResourceList, ResourceName, ScopeSelector, UsageStatsOptions
from tenantpolicy.quantity import Quantity, parse_quantity


class UsageCalculationError(Exception):
    """Some evaluators failed; ``usage`` holds the resources that succeeded."""

    def __init__(self, usage: ResourceList, errors: list[BaseException]) -> None:
        self.usage = usage
        self.errors = errors
        if len(errors) == 1:
            message = str(errors[0])
        else:
            message = "[" + ", ".join(str(e) for e in errors) + "]"
        super().__init__(message)


def equals(a: ResourceList, b: ResourceList) -> bool:
    """Whether both lists have the same names with equal quantities."""
    return len(a) == len(b) and all(key in b and value == b[key] for key, value in a.items())


def less_than_or_equal(a: ResourceList, b: ResourceList) -> tuple[bool, list[ResourceName]]:
    """Check a <= b for each key of b; also return the keys of a that exceed b."""
    exceeded = [key for key, limit in b.items() if key in a and a[key] > limit]
    return not exceeded, exceeded


def max_of(a: ResourceList, b: ResourceList) -> ResourceList:
    """Per-name maximum of two lists."""
    result = {key: (b[key] if key in b and value <= b[key] else value) for key, value in a.items()}
    for key, value in b.items():
        result.setdefault(key, value)
    return result


def add(a: ResourceList, b: ResourceList) -> ResourceList:
    """Per-name sum of two lists."""
    result = {key: (value + b[key] if key in b else value) for key, value in a.items()}
    for key, value in b.items():
        result.setdefault(key, value)
    return result


def subtract_with_non_negative_result(a: ResourceList, b: ResourceList) -> ResourceList:
    """Per-name a - b, clamped at zero."""
    zero = parse_quantity("0")
    result: ResourceList = {}
    for key, value in a.items():
        quantity = value - b[key] if key in b else value
        result[key] = quantity if quantity > zero else zero
    for key in b:
        result.setdefault(key, zero)
    return result


def subtract(a: ResourceList, b: ResourceList) -> ResourceList:
    """Per-name a - b."""
    result = {key: (value - b[key] if key in b else value) for key, value in a.items()}
    for key, value in b.items():
        if key not in result:
            result[key] = -value
    return result


def mask(resources: ResourceList, names: Iterable[ResourceName]) -> ResourceList:
    """Only the entries whose names are listed."""
    wanted = to_set(names)
    return {key: value for key, value in resources.items() if key in wanted}


def resource_names(resources: ResourceList) -> list[ResourceName]:
    return list(resources)


def contains(items: Iterable[ResourceName], item: ResourceName) -> bool:
    return item in items


def contains_prefix(prefix_set: Iterable[str], item: ResourceName) -> bool:
    return any(item.startswith(prefix) for prefix in prefix_set)


def intersection(a: Sequence[ResourceName], b: Sequence[ResourceName]) -> list[ResourceName]:
    """Names in both lists, deduplicated and sorted."""
    others = set(b)
    return sorted({item for item in a if item in others})


def difference(a: Sequence[ResourceName], b: Sequence[ResourceName]) -> list[ResourceName]:
    """Names in a but not in b, deduplicated and sorted."""
    others = set(b)
    return sorted({item for item in a if item not in others})


def is_zero(a: ResourceList) -> bool:
    return all(value.sign() == 0 for value in a.values())


def is_negative(a: ResourceList) -> list[ResourceName]:
    """Names whose quantity is below zero."""
    return [key for key, value in a.items() if value.sign() < 0]


def to_set(names: Iterable[ResourceName]) -> set[str]:
    return set(names)


def calculate_usage(
    namespace: str,
    scopes: Sequence[str],
    hard_limits: ResourceList,
    registry: Any,
    scope_selector: Optional[ScopeSelector],
) -> ResourceList:
    """Sum usage from every evaluator that tracks a resource in ``hard_limits``.

    Raises UsageCalculationError when an evaluator fails; the error carries the
    usage of the resources that could still be measured.
    """
    hard = resource_names(hard_limits)
    evaluators = list(registry.list())
    potential = [name for evaluator in evaluators for name in evaluator.matching_resources(hard)]
    matched = intersection(hard, potential)

    errors: list[BaseException] = []
    usage: ResourceList = {}
    for evaluator in evaluators:
        tracked = evaluator.matching_resources(matched)
        if not tracked:
            continue
        options = UsageStatsOptions(
            namespace=namespace,
            scopes=list(scopes),
            resources=tracked,
            scope_selector=scope_selector,
        )
        try:
            stats = evaluator.usage_stats(options)
        except Exception as exc:
            errors.append(exc)
            matched = difference(matched, tracked)
            continue
        usage = add(usage, stats.used)

    usage = mask(usage, matched)
    if errors:
        raise UsageCalculationError(usage, errors)
    return usage


__all__ = [
    "Quantity",
    "UsageCalculationError",
    "add",
    "calculate_usage",
    "contains",
    "contains_prefix",
    "difference",
    "equals",
    "intersection",
    "is_negative",
    "is_zero",
    "less_than_or_equal",
    "mask",
    "max_of",
    "resource_names",
    "subtract",
    "subtract_with_non_negative_result",
    "to_set",
]