"""Resolving the RBAC rules that apply to a user and checking for privilege escalation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from tenantpolicy.policy import compact_rules, covers
from tenantpolicy.rbac_rules import (
    GROUP_KIND,
    SERVICE_ACCOUNT_KIND,
    USER_KIND,
    ClusterRole,
    ClusterRoleBinding,
    PolicyRule,
    Role,
    RoleBinding,
    RoleRef,
    Subject,
    compact_string,
)

_log = logging.getLogger(__name__)

SERVICE_ACCOUNT_USERNAME_PREFIX = "system:serviceaccount:"

Visitor = Callable[[Optional[Any], Optional[PolicyRule], Optional[Exception]], bool]


@dataclass
class UserInfo:
    """The identity a request is made as."""

    name: str
    groups: list[str] = field(default_factory=list)


class EscalationError(Exception):
    """Raised when a user tries to grant permissions it does not hold."""


class RuleResolver(Protocol):
    def rules_for(
        self, user: UserInfo, namespace: str
    ) -> tuple[list[PolicyRule], list[Exception]]: ...


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _quote_list(values: Iterable[str]) -> str:
    return "[" + " ".join(_quote(v) for v in values) + "]"


def confirm_no_escalation(
    user: Optional[UserInfo],
    namespace: str,
    rule_resolver: RuleResolver,
    rules: Sequence[PolicyRule],
) -> None:
    """Raise EscalationError unless the user's own rules cover ``rules``."""
    if user is None:
        raise ValueError("no user on context")

    owner_rules, resolution_errors = rule_resolver.rules_for(user, namespace)
    for error in resolution_errors:
        _log.debug("non-fatal error getting local rules for %s: %s", user, error)

    covered, missing = covers(owner_rules, rules)
    if covered:
        return
    descriptions = sorted({compact_string(rule) for rule in compact_rules(missing)})
    message = (
        f"user {_quote(user.name)} (groups={_quote_list(user.groups)}) is attempting to grant "
        "RBAC permissions not currently held:\n" + "\n".join(descriptions)
    )
    if resolution_errors:
        message += "; resolution errors: [" + " ".join(str(e) for e in resolution_errors) + "]"
    raise EscalationError(message)


def service_account_matches_username(namespace: str, name: str, username: str) -> bool:
    """Whether ``username`` is the user name of the service account ``namespace/name``."""
    return username == f"{SERVICE_ACCOUNT_USERNAME_PREFIX}{namespace}:{name}"


def applies_to_user(user: UserInfo, subject: Subject, namespace: str) -> bool:
    """Whether a binding subject refers to the user.

    Service accounts without a namespace default to ``namespace``.
    """
    if subject.kind == USER_KIND:
        return user.name == subject.name
    if subject.kind == GROUP_KIND:
        return subject.name in user.groups
    if subject.kind == SERVICE_ACCOUNT_KIND:
        sa_namespace = subject.namespace or namespace
        if not sa_namespace:
            return False
        return service_account_matches_username(sa_namespace, subject.name, user.name)
    return False


def _first_applying_subject(
    user: UserInfo, subjects: Sequence[Subject], namespace: str
) -> Optional[Subject]:
    return next((s for s in subjects if applies_to_user(user, s, namespace)), None)


def _describe_subject(subject: Subject, binding_namespace: str) -> str:
    if subject.kind == SERVICE_ACCOUNT_KIND:
        namespace = subject.namespace or binding_namespace
        return f"{subject.kind} {_quote(subject.name + '/' + namespace)}"
    return f"{subject.kind} {_quote(subject.name)}"


@dataclass(frozen=True)
class _ClusterRoleBindingSource:
    binding: ClusterRoleBinding
    subject: Subject

    def __str__(self) -> str:
        return (
            f"ClusterRoleBinding {_quote(self.binding.name)} of {self.binding.role_ref.kind} "
            f"{_quote(self.binding.role_ref.name)} to {_describe_subject(self.subject, '')}"
        )


@dataclass(frozen=True)
class _RoleBindingSource:
    binding: RoleBinding
    subject: Subject

    def __str__(self) -> str:
        return (
            f"RoleBinding {_quote(self.binding.name + '/' + self.binding.namespace)} of "
            f"{self.binding.role_ref.kind} {_quote(self.binding.role_ref.name)} to "
            f"{_describe_subject(self.subject, self.binding.namespace)}"
        )


class DefaultRuleResolver:
    """Resolves rules from roles, cluster roles and their bindings."""

    def __init__(
        self,
        role_getter: Any,
        role_binding_lister: Any,
        cluster_role_getter: Any,
        cluster_role_binding_lister: Any,
    ) -> None:
        self._role_getter = role_getter
        self._role_binding_lister = role_binding_lister
        self._cluster_role_getter = cluster_role_getter
        self._cluster_role_binding_lister = cluster_role_binding_lister

    def rules_for(
        self, user: UserInfo, namespace: str
    ) -> tuple[list[PolicyRule], list[Exception]]:
        """All rules that apply to the user, and the errors met while resolving them.

        The rules are complete only when the error list is empty.
        """
        rules: list[PolicyRule] = []
        errors: list[Exception] = []

        def accumulate(source: Any, rule: Optional[PolicyRule], err: Optional[Exception]) -> bool:
            if rule is not None:
                rules.append(rule)
            if err is not None:
                errors.append(err)
            return True

        self.visit_rules_for(user, namespace, accumulate)
        return rules, errors

    def visit_rules_for(self, user: UserInfo, namespace: str, visitor: Visitor) -> None:
        """Call ``visitor(source, rule, error)`` for each rule or error; stop when it returns False."""
        try:
            cluster_bindings = self._cluster_role_binding_lister.list_cluster_role_bindings()
        except Exception as exc:
            if not visitor(None, None, exc):
                return
        else:
            for cluster_binding in cluster_bindings:
                subject = _first_applying_subject(user, cluster_binding.subjects, "")
                if subject is None:
                    continue
                try:
                    rules = self.get_role_reference_rules(cluster_binding.role_ref, "")
                except Exception as exc:
                    if not visitor(None, None, exc):
                        return
                    continue
                source = _ClusterRoleBindingSource(cluster_binding, subject)
                for rule in rules:
                    if not visitor(source, rule, None):
                        return

        if not namespace:
            return
        try:
            bindings = self._role_binding_lister.list_role_bindings(namespace)
        except Exception as exc:
            visitor(None, None, exc)
            return
        for binding in bindings:
            subject = _first_applying_subject(user, binding.subjects, namespace)
            if subject is None:
                continue
            try:
                rules = self.get_role_reference_rules(binding.role_ref, namespace)
            except Exception as exc:
                if not visitor(None, None, exc):
                    return
                continue
            source = _RoleBindingSource(binding, subject)
            for rule in rules:
                if not visitor(source, rule, None):
                    return

    def get_role_reference_rules(self, role_ref: RoleRef, binding_namespace: str) -> list[PolicyRule]:
        """The rules of the role or cluster role a binding refers to."""
        if role_ref.kind == "Role":
            return self._role_getter.get_role(binding_namespace, role_ref.name).rules
        if role_ref.kind == "ClusterRole":
            return self._cluster_role_getter.get_cluster_role(role_ref.name).rules
        raise ValueError(f"unsupported role reference kind: {_quote(role_ref.kind)}")


class StaticRoles:
    """Roles and bindings held in plain lists."""

    def __init__(
        self,
        roles: Iterable[Role] = (),
        role_bindings: Iterable[RoleBinding] = (),
        cluster_roles: Iterable[ClusterRole] = (),
        cluster_role_bindings: Iterable[ClusterRoleBinding] = (),
    ) -> None:
        self.roles = list(roles)
        self.role_bindings = list(role_bindings)
        self.cluster_roles = list(cluster_roles)
        self.cluster_role_bindings = list(cluster_role_bindings)

    def get_role(self, namespace: str, name: str) -> Role:
        if not namespace:
            raise ValueError("must provide namespace when getting role")
        for role in self.roles:
            if role.namespace == namespace and role.name == name:
                return role
        raise LookupError("role not found")

    def get_cluster_role(self, name: str) -> ClusterRole:
        for cluster_role in self.cluster_roles:
            if cluster_role.name == name:
                return cluster_role
        raise LookupError("clusterrole not found")

    def list_role_bindings(self, namespace: str) -> list[RoleBinding]:
        if not namespace:
            raise ValueError("must provide namespace when listing role bindings")
        return [binding for binding in self.role_bindings if binding.namespace == namespace]

    def list_cluster_role_bindings(self) -> list[ClusterRoleBinding]:
        return self.cluster_role_bindings


def new_test_rule_resolver(
    roles: Iterable[Role],
    role_bindings: Iterable[RoleBinding],
    cluster_roles: Iterable[ClusterRole],
    cluster_role_bindings: Iterable[ClusterRoleBinding],
) -> tuple[DefaultRuleResolver, StaticRoles]:
    """A resolver over fixed lists of roles and bindings, with the store behind it."""
    static = StaticRoles(roles, role_bindings, cluster_roles, cluster_role_bindings)
    return DefaultRuleResolver(static, static, static, static), static