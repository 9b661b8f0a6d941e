import pytest

from tenantpolicy.rbac_builders import (
    RuleError,
    new_cluster_binding,
    new_role_binding,
    new_role_binding_for_cluster_role,
    new_rule,
)
from tenantpolicy.rbac_rules import (
    GROUP_KIND,
    GROUP_NAME,
    SERVICE_ACCOUNT_KIND,
    USER_KIND,
    PolicyRule,
)


def test_rule_sorts_every_list():
    rule = new_rule("watch", "get", "list").groups("b", "a").resources("pods", "configmaps").names("z", "y").rule()
    assert rule.verbs == sorted(["watch", "get", "list"])
    assert rule.api_groups == ["a", "b"]
    assert rule.resources == ["configmaps", "pods"]
    assert rule.resource_names == ["y", "z"]


def test_builder_methods_accumulate():
    rule = new_rule("get").groups("").resources("pods").resources("services").rule()
    assert rule.resources == ["pods", "services"]


def test_non_resource_rule():
    rule = new_rule("get").urls("/healthz", "/api/*").rule()
    assert rule == PolicyRule(verbs=["get"], non_resource_urls=["/api/*", "/healthz"])


def test_rule_requires_verbs():
    with pytest.raises(RuleError, match="verbs are required"):
        new_rule().groups("").resources("pods").rule()


def test_non_resource_rule_may_not_have_resources():
    with pytest.raises(RuleError, match="non-resource rule may not have"):
        new_rule("get").urls("/healthz").resources("pods").rule()


def test_resource_rule_needs_groups():
    with pytest.raises(RuleError, match="resource rule must have apiGroups"):
        new_rule("get").resources("pods").rule()


def test_rule_needs_resources_or_urls():
    with pytest.raises(RuleError, match="either nonResourceURLs or resources"):
        new_rule("get").groups("").rule()


def test_returned_rule_is_independent_of_builder():
    builder = new_rule("get").groups("").resources("pods")
    rule = builder.rule()
    builder.resources("secrets")
    assert rule.resources == ["pods"]


def test_cluster_binding_subjects_and_role_ref():
    binding = new_cluster_binding("admin").groups("devs").users("alice").sas("kube-system", "bot").binding()
    assert binding.name == "admin"
    assert binding.role_ref.kind == "ClusterRole"
    assert binding.role_ref.name == "admin"
    assert binding.role_ref.api_group == GROUP_NAME
    assert [(s.kind, s.name, s.namespace) for s in binding.subjects] == [
        (GROUP_KIND, "devs", ""),
        (USER_KIND, "alice", ""),
        (SERVICE_ACCOUNT_KIND, "bot", "kube-system"),
    ]
    assert binding.subjects[0].api_group == GROUP_NAME
    assert binding.subjects[2].api_group == ""


def test_cluster_binding_requires_subjects():
    with pytest.raises(RuleError, match="subjects are required"):
        new_cluster_binding("admin").binding()


def test_role_binding_refers_to_role():
    binding = new_role_binding("edit", "team-a").users("bob").binding()
    assert (binding.name, binding.namespace) == ("edit", "team-a")
    assert binding.role_ref.kind == "Role"
    assert binding.subjects[0].name == "bob"


def test_role_binding_for_cluster_role():
    binding = new_role_binding_for_cluster_role("view", "team-a").groups("readers").sas("team-a", "ci").binding()
    assert binding.role_ref.kind == "ClusterRole"
    assert binding.role_ref.name == "view"
    assert [s.kind for s in binding.subjects] == [GROUP_KIND, SERVICE_ACCOUNT_KIND]


def test_role_binding_requires_subjects():
    with pytest.raises(RuleError):
        new_role_binding("edit", "team-a").binding()