from dataclasses import dataclass, field

import pytest

from tenantpolicy.api import UsageStats
from tenantpolicy.quantity import parse_quantity as q
from tenantpolicy.resources import (
    UsageCalculationError,
    add,
    calculate_usage,
    contains,
    contains_prefix,
    difference,
    equals,
    intersection,
    is_negative,
    is_zero,
    less_than_or_equal,
    mask,
    max_of,
    resource_names,
    subtract,
    subtract_with_non_negative_result,
    to_set,
)


def test_equals():
    assert equals({"memory": q("1Gi")}, {"memory": q("1073741824")})
    assert not equals({"cpu": q("1")}, {"cpu": q("1"), "memory": q("1Gi")})
    assert not equals({"cpu": q("1")}, {"cpu": q("2")})
    assert not equals({"cpu": q("1")}, {"memory": q("1")})


def test_less_than_or_equal_reports_exceeded():
    ok, exceeded = less_than_or_equal({"cpu": q("2"), "memory": q("1Gi")}, {"cpu": q("1"), "memory": q("2Gi")})
    assert ok is False
    assert exceeded == ["cpu"]
    assert less_than_or_equal({"cpu": q("1")}, {"cpu": q("1"), "pods": q("1")}) == (True, [])


def test_max_of_takes_largest_per_key():
    a = {"cpu": q("2"), "memory": q("1Gi")}
    b = {"cpu": q("1"), "memory": q("2Gi"), "pods": q("3")}
    result = max_of(a, b)
    assert result == {"cpu": q("2"), "memory": q("2Gi"), "pods": q("3")}


def test_add_then_subtract_round_trip():
    a = {"cpu": q("1"), "pods": q("2")}
    b = {"cpu": q("500m"), "memory": q("1Gi")}
    total = add(a, b)
    assert set(total) == {"cpu", "pods", "memory"}
    assert equals(mask(subtract(total, b), resource_names(a)), a)
    assert is_zero(mask(subtract(total, b), ["memory"]))


def test_subtract_negates_keys_only_in_b():
    assert subtract({}, {"cpu": q("2")})["cpu"] == -q("2")


def test_subtract_with_non_negative_result_clamps():
    result = subtract_with_non_negative_result({"cpu": q("1"), "pods": q("3")}, {"cpu": q("2"), "memory": q("1")})
    assert result["cpu"] == q("0")
    assert result["memory"] == q("0")
    assert result["pods"] == q("3")
    assert is_negative(result) == []


def test_mask_keeps_named_entries():
    assert mask({"cpu": q("1"), "memory": q("1Gi")}, ["cpu", "pods"]) == {"cpu": q("1")}


def test_contains_and_prefix():
    assert contains(["cpu", "memory"], "memory")
    assert not contains(["cpu"], "memory")
    assert contains_prefix(["hugepages-"], "hugepages-2Mi")
    assert not contains_prefix(["hugepages-"], "requests.hugepages-2Mi")


def test_intersection_and_difference_are_sorted_and_deduplicated():
    assert intersection(["c", "b", "a", "b"], ["a", "b"]) == ["a", "b"]
    assert difference(["c", "b", "a", "c"], ["a"]) == ["b", "c"]


def test_is_zero_and_is_negative():
    assert is_zero({"cpu": q("0"), "memory": q("0Gi")})
    assert not is_zero({"cpu": q("1m")})
    assert is_negative({"cpu": q("-1"), "memory": q("1")}) == ["cpu"]


def test_to_set():
    assert to_set(["cpu", "cpu", "pods"]) == {"cpu", "pods"}


@dataclass
class _FakeEvaluator:
    names: list
    used: dict
    fail: bool = False
    seen: list = field(default_factory=list)

    def matching_resources(self, names):
        return intersection(names, self.names)

    def usage_stats(self, options):
        self.seen.append(options)
        if self.fail:
            raise RuntimeError("boom")
        return UsageStats(used=dict(self.used))


class _Registry:
    def __init__(self, evaluators):
        self._evaluators = evaluators

    def list(self):
        return list(self._evaluators)


def test_calculate_usage_sums_and_masks():
    tracked = _FakeEvaluator(["cpu", "count/pods"], {"cpu": q("2"), "count/pods": q("3"), "memory": q("1")})
    idle = _FakeEvaluator(["services"], {"services": q("1")})
    hard = {"cpu": q("4"), "count/pods": q("10"), "secrets": q("1")}
    usage = calculate_usage("team-a", ["BestEffort"], hard, _Registry([tracked, idle]), None)
    assert usage == {"cpu": q("2"), "count/pods": q("3")}
    assert idle.seen == []
    assert tracked.seen[0].namespace == "team-a"
    assert tracked.seen[0].resources == ["count/pods", "cpu"]
    assert tracked.seen[0].scopes == ["BestEffort"]


def test_calculate_usage_reports_errors_with_partial_usage():
    failing = _FakeEvaluator(["secrets"], {}, fail=True)
    working = _FakeEvaluator(["cpu"], {"cpu": q("1")})
    hard = {"cpu": q("4"), "secrets": q("1")}
    with pytest.raises(UsageCalculationError) as info:
        calculate_usage("team-a", [], hard, _Registry([failing, working]), None)
    assert info.value.usage == {"cpu": q("1")}
    assert len(info.value.errors) == 1
    assert str(info.value) == "boom"