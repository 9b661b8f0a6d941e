# tenantpolicy

Building blocks for resource quotas and RBAC policy in a multi-tenant
cluster, in plain Python with no runtime dependencies.

## Modules

- `tenantpolicy.quantity` – `Quantity`, an exact amount of a resource, and
  `parse_quantity`, which reads strings such as `250m`, `512Mi`, `2k` or
  `3e6`. Quantities add, subtract, negate and compare, and print back in
  their notation (`parse_quantity("0.5")` prints as `500m`).
- `tenantpolicy.api` – shared data types: `GroupResource`,
  `GroupVersionResource`, `Operation`, `Attributes`, `ResourceQuota`
  (with `scope_selectors()`), `ScopedResourceSelectorRequirement`,
  `ScopeSelector`, `UsageStatsOptions`, `UsageStats`, `LimitedResource`,
  `Configuration`, and the `Evaluator` protocol.
- `tenantpolicy.resources` – operations on resource lists (dicts of name to
  `Quantity`): `add`, `subtract`, `subtract_with_non_negative_result`,
  `max_of`, `mask`, `equals`, `less_than_or_equal`, `is_zero`,
  `is_negative`, `intersection`, `difference` and more, plus
  `calculate_usage`, which sums the usage reported by a registry's
  evaluators and raises `UsageCalculationError` (carrying the partial usage)
  when some of them fail.
- `tenantpolicy.config_validation` – `validate_configuration` returns a list
  of `FieldError` for limited resources with no resource name.
- `tenantpolicy.podutil` – the `Pod` and `Container` model and helpers:
  `get_pod_qos` (`PodQOSClass`), `is_best_effort`, `is_terminating`,
  `pod_matches_scope`, `quota_v1_pod`, `is_native_resource`,
  `is_extended_resource_name`, `is_qualified_name`, and `LabelRequirement`
  built by `scoped_resource_selector_requirement_as_selector`.
- `tenantpolicy.rbac_rules` – `PolicyRule`, `Subject`, `RoleRef`, `Role`,
  `ClusterRole`, `RoleBinding`, `ClusterRoleBinding`, and matching helpers
  such as `verb_matches`, `resource_matches`, `non_resource_url_matches`,
  `compact_string` and `sort_rules`.
- `tenantpolicy.rbac_builders` – `new_rule`, `new_cluster_binding`,
  `new_role_binding` and `new_role_binding_for_cluster_role`; invalid
  rules or bindings raise `RuleError`.
- `tenantpolicy.policy` – `covers`, `breakdown_rule` and `compact_rules`.
- `tenantpolicy.rule_resolver` – `DefaultRuleResolver`, `StaticRoles`,
  `new_test_rule_resolver`, `applies_to_user` and `confirm_no_escalation`,
  which raises `EscalationError` when a user grants rights they do not hold.

## Installation

```
pip install .
```

## Examples

Checking a request against a hard limit:

```python
from tenantpolicy.quantity import parse_quantity
from tenantpolicy.resources import add, less_than_or_equal

used = {"requests.cpu": parse_quantity("500m")}
request = {"requests.cpu": parse_quantity("750m")}
hard = {"requests.cpu": parse_quantity("1")}

allowed, exceeded = less_than_or_equal(add(used, request), hard)
print(allowed, exceeded)   # False ['requests.cpu']
```

Checking that one set of rules covers another:

```python
from tenantpolicy.rbac_builders import new_rule
from tenantpolicy.policy import covers

owner = [new_rule("get", "list").groups("").resources("pods").rule()]
wanted = [new_rule("delete").groups("").resources("pods").rule()]

ok, missing = covers(owner, wanted)
print(ok)        # False
print(missing)   # the single uncovered "delete pods" rule
```

Refusing privilege escalation:

```python
from tenantpolicy.rbac_builders import new_rule
from tenantpolicy.rbac_rules import ClusterRole, ClusterRoleBinding, RoleRef, Subject
from tenantpolicy.rule_resolver import (
    EscalationError, UserInfo, confirm_no_escalation, new_test_rule_resolver,
)

reader = ClusterRole("reader", [new_rule("get").groups("").resources("pods").rule()])
binding = ClusterRoleBinding(
    "reader", RoleRef(kind="ClusterRole", name="reader"), [Subject(kind="User", name="alice")]
)
resolver, _ = new_test_rule_resolver([], [], [reader], [binding])

try:
    confirm_no_escalation(
        UserInfo("alice"), "team-a", resolver,
        [new_rule("delete").groups("").resources("pods").rule()],
    )
except EscalationError as exc:
    print(exc)
```

## What it does not do

The package has no ready-made quota evaluators for pods, services, persistent
volume claims or object counts, and no evaluator registry; `calculate_usage`
works with any object whose `list()` returns evaluators that follow the
`Evaluator` protocol in `tenantpolicy.api`, which you supply. It also has no
command-line tool, no admission server and no connection to a cluster: roles,
bindings, quotas and pods are passed in as Python objects.

## Running the tests

```
pip install .[test]
pytest
```