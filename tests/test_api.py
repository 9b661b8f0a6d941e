from tenantpolicy.api import (
    SCOPE_SELECTOR_OP_EXISTS,
    Attributes,
    Configuration,
    GroupResource,
    GroupVersionResource,
    LimitedResource,
    Operation,
    ResourceQuota,
    ScopedResourceSelectorRequirement,
    ScopeSelector,
    UsageStats,
)


def test_group_resource_drops_version():
    gvr = GroupVersionResource("apps", "v1", "deployments")
    assert gvr.group_resource() == GroupResource("apps", "deployments")


def test_scope_selectors_plain_scopes_then_expressions():
    expression = ScopedResourceSelectorRequirement("PriorityClass", "In", ("high",))
    quota = ResourceQuota(
        name="q",
        scopes=["BestEffort", "Terminating"],
        scope_selector=ScopeSelector([expression]),
    )
    selectors = quota.scope_selectors()
    assert [s.scope_name for s in selectors] == ["BestEffort", "Terminating", "PriorityClass"]
    assert selectors[0].operator == SCOPE_SELECTOR_OP_EXISTS
    assert selectors[-1] == expression


def test_scope_selectors_empty_quota():
    assert ResourceQuota(name="q").scope_selectors() == []


def test_usage_stats_instances_do_not_share_state():
    first = UsageStats()
    second = UsageStats()
    first.used["cpu"] = None
    assert "cpu" not in second.used


def test_attributes_keep_request_fields():
    gvr = GroupVersionResource("", "v1", "pods")
    attrs = Attributes(Operation.CREATE, gvr, namespace="team-a")
    assert attrs.resource.group_resource() == GroupResource("", "pods")
    assert attrs.namespace == "team-a"
    assert attrs.dry_run is False


def test_configuration_holds_limited_resources():
    limited = LimitedResource(resource="persistentvolumeclaims", match_contains=["requests.storage"])
    config = Configuration([limited])
    assert config.limited_resources[0].resource == "persistentvolumeclaims"
    assert config.limited_resources[0].api_group == ""