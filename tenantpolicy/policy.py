"""Comparing and compacting sets of RBAC policy rules."""

from __future__ import annotations

from typing import Iterable, NamedTuple, Optional, Sequence

from tenantpolicy.rbac_rules import API_GROUP_ALL, RESOURCE_ALL, VERB_ALL, PolicyRule


class _SimpleResource(NamedTuple):
    group: str
    resource: str
    resource_name_exists: bool
    resource_name: str


def _simple_resource(rule: PolicyRule) -> Optional[_SimpleResource]:
    """The key of a rule with one group, one resource and at most one name, else None."""
    if len(rule.resource_names) > 1 or rule.non_resource_urls:
        return None
    if len(rule.api_groups) != 1 or len(rule.resources) != 1:
        return None
    if rule.resource_names:
        return _SimpleResource(rule.api_groups[0], rule.resources[0], True, rule.resource_names[0])
    return _SimpleResource(rule.api_groups[0], rule.resources[0], False, "")


def compact_rules(rules: Iterable[PolicyRule]) -> list[PolicyRule]:
    """Merge simple rules that differ only by verb; other rules are kept as they are."""
    compacted: list[PolicyRule] = []
    simple: dict[_SimpleResource, PolicyRule] = {}
    for rule in rules:
        key = _simple_resource(rule)
        if key is None:
            compacted.append(rule)
        elif key in simple:
            simple[key].verbs.extend(rule.verbs)
        else:
            simple[key] = rule.copy()
    compacted.extend(simple.values())
    return compacted


def breakdown_rule(rule: PolicyRule) -> list[PolicyRule]:
    """Split a rule into rules with at most one verb, resource and resource name each."""
    subrules: list[PolicyRule] = []
    for group in rule.api_groups:
        for resource in rule.resources:
            for verb in rule.verbs:
                if rule.resource_names:
                    subrules.extend(
                        PolicyRule(
                            verbs=[verb],
                            api_groups=[group],
                            resources=[resource],
                            resource_names=[name],
                        )
                        for name in rule.resource_names
                    )
                else:
                    subrules.append(
                        PolicyRule(verbs=[verb], api_groups=[group], resources=[resource])
                    )
    # Non-resource URLs combine with verbs only.
    for url in rule.non_resource_urls:
        for verb in rule.verbs:
            subrules.append(PolicyRule(verbs=[verb], non_resource_urls=[url]))
    return subrules


def _has_all(owned: Sequence[str], wanted: Sequence[str]) -> bool:
    return set(wanted) <= set(owned)


def _resource_covers_all(owned: Sequence[str], wanted: Sequence[str]) -> bool:
    if RESOURCE_ALL in owned or _has_all(owned, wanted):
        return True
    for path in wanted:
        if path in owned:
            continue
        if "/" not in path:
            return False
        subresource = path.split("/", 1)[1]
        if "*/" + subresource not in owned:
            return False
    return True


def _non_resource_url_covers(owner: str, path: str) -> bool:
    if owner == path:
        return True
    return owner.endswith("*") and path.startswith(owner.rstrip("*"))


def _non_resource_urls_cover_all(owned: Sequence[str], wanted: Sequence[str]) -> bool:
    return all(any(_non_resource_url_covers(owner, path) for owner in owned) for path in wanted)


def _rule_covers(owner: PolicyRule, sub: PolicyRule) -> bool:
    verb_ok = VERB_ALL in owner.verbs or _has_all(owner.verbs, sub.verbs)
    group_ok = API_GROUP_ALL in owner.api_groups or _has_all(owner.api_groups, sub.api_groups)
    resource_ok = _resource_covers_all(owner.resources, sub.resources)
    url_ok = _non_resource_urls_cover_all(owner.non_resource_urls, sub.non_resource_urls)
    if not sub.resource_names:
        name_ok = not owner.resource_names
    else:
        name_ok = not owner.resource_names or _has_all(owner.resource_names, sub.resource_names)
    return verb_ok and group_ok and resource_ok and name_ok and url_ok


def covers(
    owner_rules: Sequence[PolicyRule], servant_rules: Iterable[PolicyRule]
) -> tuple[bool, list[PolicyRule]]:
    """Whether the owner rules allow everything the servant rules do, and what they miss."""
    uncovered = [
        subrule
        for servant in servant_rules
        for subrule in breakdown_rule(servant)
        if not any(_rule_covers(owner, subrule) for owner in owner_rules)
    ]
    return not uncovered, uncovered