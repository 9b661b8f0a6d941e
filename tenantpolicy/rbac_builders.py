"""Builders that assemble RBAC rules and bindings and check them for common mistakes."""

from __future__ import annotations

from dataclasses import replace

from tenantpolicy.rbac_rules import (
    GROUP_KIND,
    GROUP_NAME,
    SERVICE_ACCOUNT_KIND,
    USER_KIND,
    ClusterRoleBinding,
    PolicyRule,
    RoleBinding,
    RoleRef,
    Subject,
)


class RuleError(ValueError):
    """Raised when a builder holds an incomplete or inconsistent object."""


class PolicyRuleBuilder:
    """Collects the parts of a policy rule and validates them on ``rule()``."""

    def __init__(self, *verbs: str) -> None:
        self.policy_rule = PolicyRule(verbs=list(verbs))

    def groups(self, *args: str) -> PolicyRuleBuilder:
        self.policy_rule.api_groups.extend(args)
        return self

    def resources(self, *args: str) -> PolicyRuleBuilder:
        self.policy_rule.resources.extend(args)
        return self

    def names(self, *args: str) -> PolicyRuleBuilder:
        self.policy_rule.resource_names.extend(args)
        return self

    def urls(self, *args: str) -> PolicyRuleBuilder:
        self.policy_rule.non_resource_urls.extend(args)
        return self

    def rule(self) -> PolicyRule:
        """The built rule with every list sorted; raises RuleError if it is invalid."""
        rule = self.policy_rule
        if not rule.verbs:
            raise RuleError(f"verbs are required: {rule!r}")
        if rule.non_resource_urls:
            if rule.api_groups or rule.resources or rule.resource_names:
                raise RuleError(
                    "non-resource rule may not have apiGroups, resources, or resourceNames: "
                    f"{rule!r}"
                )
        elif rule.resources:
            if not rule.api_groups:
                raise RuleError(f"resource rule must have apiGroups: {rule!r}")
        else:
            raise RuleError(f"a rule must have either nonResourceURLs or resources: {rule!r}")

        rule.resources.sort()
        rule.resource_names.sort()
        rule.api_groups.sort()
        rule.non_resource_urls.sort()
        rule.verbs.sort()
        return rule.copy()


def _group_subjects(groups: tuple[str, ...]) -> list[Subject]:
    return [Subject(kind=GROUP_KIND, name=group, api_group=GROUP_NAME) for group in groups]


def _user_subjects(users: tuple[str, ...]) -> list[Subject]:
    return [Subject(kind=USER_KIND, name=user, api_group=GROUP_NAME) for user in users]


def _sa_subjects(namespace: str, names: tuple[str, ...]) -> list[Subject]:
    return [Subject(kind=SERVICE_ACCOUNT_KIND, name=name, namespace=namespace) for name in names]


class ClusterRoleBindingBuilder:
    """Collects the subjects of a cluster role binding."""

    def __init__(self, cluster_role_name: str) -> None:
        self.cluster_role_binding = ClusterRoleBinding(
            name=cluster_role_name,
            role_ref=RoleRef(kind="ClusterRole", name=cluster_role_name, api_group=GROUP_NAME),
        )

    def groups(self, *args: str) -> ClusterRoleBindingBuilder:
        self.cluster_role_binding.subjects.extend(_group_subjects(args))
        return self

    def users(self, *args: str) -> ClusterRoleBindingBuilder:
        self.cluster_role_binding.subjects.extend(_user_subjects(args))
        return self

    def sas(self, namespace: str, *args: str) -> ClusterRoleBindingBuilder:
        self.cluster_role_binding.subjects.extend(_sa_subjects(namespace, args))
        return self

    def binding(self) -> ClusterRoleBinding:
        """The built binding; raises RuleError if it has no subjects."""
        binding = self.cluster_role_binding
        if not binding.subjects:
            raise RuleError(f"subjects are required: {binding!r}")
        return replace(binding, subjects=list(binding.subjects))


class RoleBindingBuilder:
    """Collects the subjects of a namespaced role binding."""

    def __init__(self, role_name: str, namespace: str, role_kind: str = "Role") -> None:
        self.role_binding = RoleBinding(
            name=role_name,
            namespace=namespace,
            role_ref=RoleRef(kind=role_kind, name=role_name, api_group=GROUP_NAME),
        )

    def groups(self, *args: str) -> RoleBindingBuilder:
        self.role_binding.subjects.extend(_group_subjects(args))
        return self

    def users(self, *args: str) -> RoleBindingBuilder:
        self.role_binding.subjects.extend(_user_subjects(args))
        return self

    def sas(self, namespace: str, *args: str) -> RoleBindingBuilder:
        self.role_binding.subjects.extend(_sa_subjects(namespace, args))
        return self

    def binding(self) -> RoleBinding:
        """The built binding; raises RuleError if it has no subjects."""
        binding = self.role_binding
        if not binding.subjects:
            raise RuleError(f"subjects are required: {binding!r}")
        return replace(binding, subjects=list(binding.subjects))


def new_rule(*args: str) -> PolicyRuleBuilder:
    """Start a rule allowing the given verbs."""
    return PolicyRuleBuilder(*args)


def new_cluster_binding(cluster_role_name: str) -> ClusterRoleBindingBuilder:
    """Start a cluster role binding named after the cluster role it binds."""
    return ClusterRoleBindingBuilder(cluster_role_name)


def new_role_binding(role_name: str, namespace: str) -> RoleBindingBuilder:
    """Start a role binding to a namespaced role of the same name."""
    return RoleBindingBuilder(role_name, namespace, "Role")


def new_role_binding_for_cluster_role(role_name: str, namespace: str) -> RoleBindingBuilder:
    """Start a namespaced role binding to a cluster role of the same name."""
    return RoleBindingBuilder(role_name, namespace, "ClusterRole")