"""RBAC object model and rule matching helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

VERB_ALL = "*"
API_GROUP_ALL = "*"
RESOURCE_ALL = "*"
NON_RESOURCE_ALL = "*"

GROUP_NAME = "rbac.authorization.k8s.io"
SERVICE_ACCOUNT_KIND = "ServiceAccount"
USER_KIND = "User"
GROUP_KIND = "Group"


@dataclass
class PolicyRule:
    """A set of verbs allowed on resources or non-resource URLs."""

    verbs: list[str] = field(default_factory=list)
    api_groups: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    resource_names: list[str] = field(default_factory=list)
    non_resource_urls: list[str] = field(default_factory=list)

    def copy(self) -> PolicyRule:
        return PolicyRule(
            list(self.verbs),
            list(self.api_groups),
            list(self.resources),
            list(self.resource_names),
            list(self.non_resource_urls),
        )

    def __str__(self) -> str:
        return "PolicyRule" + compact_string(self)


@dataclass
class Subject:
    kind: str
    name: str
    namespace: str = ""
    api_group: str = ""


@dataclass
class RoleRef:
    kind: str
    name: str
    api_group: str = GROUP_NAME


@dataclass
class Role:
    name: str
    namespace: str
    rules: list[PolicyRule] = field(default_factory=list)


@dataclass
class ClusterRole:
    name: str
    rules: list[PolicyRule] = field(default_factory=list)


@dataclass
class RoleBinding:
    name: str
    namespace: str
    role_ref: RoleRef
    subjects: list[Subject] = field(default_factory=list)


@dataclass
class ClusterRoleBinding:
    name: str
    role_ref: RoleRef
    subjects: list[Subject] = field(default_factory=list)


def role_ref_group_kind(role_ref: RoleRef) -> tuple[str, str]:
    """The (group, kind) pair a role reference points at."""
    return role_ref.api_group, role_ref.kind


def verb_matches(rule: PolicyRule, verb: str) -> bool:
    return any(v == VERB_ALL or v == verb for v in rule.verbs)


def api_group_matches(rule: PolicyRule, group: str) -> bool:
    return any(g == API_GROUP_ALL or g == group for g in rule.api_groups)


def resource_matches(rule: PolicyRule, combined_resource: str, subresource: str) -> bool:
    """Whether the rule covers ``resource/subresource``, including ``*/subresource`` rules."""
    for rule_resource in rule.resources:
        if rule_resource == RESOURCE_ALL or rule_resource == combined_resource:
            return True
        if not subresource:
            continue
        if (
            len(rule_resource) == len(subresource) + 2
            and rule_resource.startswith("*/")
            and rule_resource.endswith(subresource)
        ):
            return True
    return False


def resource_name_matches(rule: PolicyRule, name: str) -> bool:
    """A rule without resource names matches any name."""
    if not rule.resource_names:
        return True
    return name in rule.resource_names


def non_resource_url_matches(rule: PolicyRule, url: str) -> bool:
    for rule_url in rule.non_resource_urls:
        if rule_url == NON_RESOURCE_ALL or rule_url == url:
            return True
        if rule_url.endswith("*") and url.startswith(rule_url.rstrip("*")):
            return True
    return False


def subjects_strings(
    subjects: Iterable[Subject],
) -> tuple[list[str], list[str], list[str], list[str]]:
    """Users, groups, service accounts and other subjects, for display."""
    users: list[str] = []
    groups: list[str] = []
    service_accounts: list[str] = []
    others: list[str] = []
    for subject in subjects:
        if subject.kind == SERVICE_ACCOUNT_KIND:
            service_accounts.append(f"{subject.namespace}/{subject.name}")
        elif subject.kind == USER_KIND:
            users.append(subject.name)
        elif subject.kind == GROUP_KIND:
            groups.append(subject.name)
        else:
            others.append(f"{subject.kind}/{subject.namespace}/{subject.name}")
    return users, groups, service_accounts, others


_SIMPLE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _quote(text: str) -> str:
    parts = []
    for char in text:
        if char in _SIMPLE_ESCAPES:
            parts.append(_SIMPLE_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            parts.append(f"\\x{ord(char):02x}")
        elif char.isprintable():
            parts.append(char)
        elif ord(char) < 0x10000:
            parts.append(f"\\u{ord(char):04x}")
        else:
            parts.append(f"\\U{ord(char):08x}")
    return '"' + "".join(parts) + '"'


def _quote_list(values: Iterable[str]) -> str:
    return "[" + " ".join(_quote(v) for v in values) + "]"


def compact_string(rule: PolicyRule) -> str:
    """A compact description of the rule's non-empty fields."""
    fields = (
        ("APIGroups", rule.api_groups),
        ("Resources", rule.resources),
        ("NonResourceURLs", rule.non_resource_urls),
        ("ResourceNames", rule.resource_names),
        ("Verbs", rule.verbs),
    )
    parts = [f"{label}:{_quote_list(values)}" for label, values in fields if values]
    return "{" + ", ".join(parts) + "}"


def sort_rules(rules: Iterable[PolicyRule]) -> list[PolicyRule]:
    """Rules ordered by their string form."""
    return sorted(rules, key=str)