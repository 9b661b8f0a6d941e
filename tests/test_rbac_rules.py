import pytest

from tenantpolicy.rbac_rules import (
    GROUP_NAME,
    PolicyRule,
    RoleRef,
    Subject,
    api_group_matches,
    compact_string,
    non_resource_url_matches,
    resource_matches,
    resource_name_matches,
    role_ref_group_kind,
    sort_rules,
    subjects_strings,
    verb_matches,
)


def test_role_ref_group_kind():
    assert role_ref_group_kind(RoleRef("ClusterRole", "admin")) == (GROUP_NAME, "ClusterRole")


@pytest.mark.parametrize(
    "verbs, verb, expected",
    [(["get", "list"], "list", True), (["*"], "delete", True), (["get"], "delete", False)],
)
def test_verb_matches(verbs, verb, expected):
    assert verb_matches(PolicyRule(verbs=verbs), verb) is expected


def test_api_group_matches():
    assert api_group_matches(PolicyRule(api_groups=["apps"]), "apps")
    assert api_group_matches(PolicyRule(api_groups=["*"]), "batch")
    assert not api_group_matches(PolicyRule(api_groups=["apps"]), "")


@pytest.mark.parametrize(
    "resources, combined, sub, expected",
    [
        (["pods"], "pods", "", True),
        (["*"], "pods/log", "log", True),
        (["*/status"], "pods/status", "status", True),
        (["*/status"], "pods", "", False),
        (["x/status"], "pods/status", "status", False),
        (["pods"], "pods/status", "status", False),
    ],
)
def test_resource_matches(resources, combined, sub, expected):
    assert resource_matches(PolicyRule(resources=resources), combined, sub) is expected


def test_resource_name_matches():
    assert resource_name_matches(PolicyRule(), "anything")
    assert resource_name_matches(PolicyRule(resource_names=["a", "b"]), "b")
    assert not resource_name_matches(PolicyRule(resource_names=["a"]), "b")


@pytest.mark.parametrize(
    "urls, url, expected",
    [
        (["*"], "/healthz", True),
        (["/healthz"], "/healthz", True),
        (["/api/*"], "/api/v1", True),
        (["/api/*"], "/apis", False),
        (["/healthz"], "/version", False),
    ],
)
def test_non_resource_url_matches(urls, url, expected):
    assert non_resource_url_matches(PolicyRule(non_resource_urls=urls), url) is expected


def test_subjects_strings():
    subjects = [
        Subject("User", "alice"),
        Subject("Group", "devs"),
        Subject("ServiceAccount", "builder", namespace="ci"),
        Subject("Robot", "r2", namespace="ns"),
    ]
    users, groups, sas, others = subjects_strings(subjects)
    assert users == ["alice"]
    assert groups == ["devs"]
    assert sas == ["ci/builder"]
    assert others == ["Robot/ns/r2"]


def test_compact_string_lists_non_empty_fields_in_order():
    rule = PolicyRule(verbs=["get"], api_groups=[""], resources=["pods"])
    assert compact_string(rule) == '{APIGroups:[""], Resources:["pods"], Verbs:["get"]}'


def test_compact_string_empty_rule():
    assert compact_string(PolicyRule()) == "{}"


def test_compact_string_escapes_quotes():
    text = compact_string(PolicyRule(verbs=['a"b']))
    assert '\\"' in text


def test_str_prefixes_compact_string():
    rule = PolicyRule(verbs=["get", "list"], non_resource_urls=["/healthz"])
    assert str(rule) == "PolicyRule" + compact_string(rule)


def test_sort_rules_orders_by_string():
    rules = [PolicyRule(verbs=["watch"]), PolicyRule(verbs=["get"]), PolicyRule(verbs=["list"])]
    ordered = sort_rules(rules)
    assert [r.verbs[0] for r in ordered] == ["get", "list", "watch"]
    assert [str(r) for r in ordered] == sorted(str(r) for r in rules)