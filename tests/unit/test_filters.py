"""
Unit tests for filter decoding and translation.
"""

import pytest

from opsdesk.reporting.filters import (
    Equals, Operator, Predicate, Range, decode_filter, translate,
)
from opsdesk.reporting.registry import ENTITY_REGISTRY

ORDERS = ENTITY_REGISTRY.get_entity_config("orders")


class TestDecodeFilter:

    @pytest.mark.parametrize("raw", [None, "", {}])
    def test_empty_values_are_ignored(self, raw):
        assert decode_filter(raw) is None

    def test_scalar_decodes_to_equals(self):
        assert decode_filter("pending") == Equals("pending")
        assert decode_filter(0) == Equals(0)

    def test_range_with_both_bounds(self):
        assert decode_filter({"from": "2024-01-01", "to": "2024-01-31"}) == Range("2024-01-01", "2024-01-31")

    def test_range_with_one_empty_bound(self):
        assert decode_filter({"from": "", "to": "2024-01-31"}) == Range(None, "2024-01-31")

    def test_range_with_no_bounds_is_ignored(self):
        assert decode_filter({"from": None, "to": ""}) is None

    def test_operator_reads_val_or_value(self):
        assert decode_filter({"op": "gte", "val": 500}) == Operator("gte", 500)
        assert decode_filter({"op": "gte", "value": 500}) == Operator("gte", 500)

    def test_operator_without_value_is_ignored(self):
        assert decode_filter({"op": "gte"}) is None

    def test_unrecognised_shapes_are_ignored(self):
        assert decode_filter({"something": 1}) is None
        assert decode_filter(["a", "b"]) is None


class TestTranslate:

    def test_scalar_on_filterable_column_emits_equality(self):
        assert translate({"status": "pending"}, ORDERS) == [Predicate("eq", "status", "pending")]

    def test_column_outside_allow_list_is_dropped(self):
        # updated_at is a real column but not filterable on orders
        assert translate({"updated_at": "2024-01-01"}, ORDERS) == []
        assert translate({"updated_at": {"op": "gt", "val": "2024-01-01"}}, ORDERS) == []
        assert translate({"nonexistent": "x"}, ORDERS) == []

    def test_range_emits_inclusive_bounds(self):
        predicates = translate({"created_at": {"from": "2024-01-01", "to": "2024-02-01"}}, ORDERS)
        assert predicates == [
            Predicate("gte", "created_at", "2024-01-01"),
            Predicate("lte", "created_at", "2024-02-01"),
        ]

    def test_open_ended_range(self):
        assert translate({"created_at": {"to": "2024-02-01"}}, ORDERS) == [
            Predicate("lte", "created_at", "2024-02-01"),
        ]

    @pytest.mark.parametrize("op", ["gt", "gte", "lt", "lte", "neq"])
    def test_comparison_operators_map_directly(self, op):
        assert translate({"total": {"op": op, "val": 10}}, ORDERS) == [Predicate(op, "total", 10)]

    def test_contains_is_case_insensitive_pattern(self):
        assert translate({"status": {"op": "contains", "val": "pend"}}, ORDERS) == [
            Predicate("ilike", "status", "%pend%"),
        ]

    def test_in_requires_a_list(self):
        assert translate({"status": {"op": "in", "val": ["pending", "completed"]}}, ORDERS) == [
            Predicate("in_", "status", ["pending", "completed"]),
        ]
        assert translate({"status": {"op": "in", "val": "pending"}}, ORDERS) == []

    def test_between_requires_two_elements(self):
        assert translate({"total": {"op": "between", "val": [100, 500]}}, ORDERS) == [
            Predicate("gte", "total", 100),
            Predicate("lte", "total", 500),
        ]
        assert translate({"total": {"op": "between", "val": [100]}}, ORDERS) == []
        assert translate({"total": {"op": "between", "val": 100}}, ORDERS) == []

    def test_unknown_operator_falls_back_to_equality(self):
        assert translate({"status": {"op": "matches", "val": "pending"}}, ORDERS) == [
            Predicate("eq", "status", "pending"),
        ]

    def test_combined_filters_are_all_applied(self):
        predicates = translate(
            {"status": "pending", "total": {"op": "gte", "val": 500}, "client_id": None},
            ORDERS,
        )
        assert predicates == [Predicate("eq", "status", "pending"), Predicate("gte", "total", 500)]

    def test_no_filters(self):
        assert translate(None, ORDERS) == []
        assert translate({}, ORDERS) == []
