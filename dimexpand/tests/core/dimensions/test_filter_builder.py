"""Tests for FilterBuilder"""

import os
import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dimexpand.settings")
django.setup()

import pytest

from dimexpand.core.dimensions.filter_builder import FilterBuilder
from dimexpand.schemas.access_schema import AccessScope
from dimexpand.schemas.dimension_schema import ChartFilter


@pytest.fixture
def filter_builder():
    return FilterBuilder(AccessScope(user_id="7", permission_scope="organization"))


class TestToChartFilterArray:
    """Tests for to_chart_filter_array"""

    def test_all_filters_in_order(self, filter_builder):
        filters = filter_builder.to_chart_filter_array(
            {
                "start_date": "2024-01-01",
                "end_date": "2024-12-31",
                "practice_uids": [114, 115],
                "measure": "Charges",
                "frequency": "Monthly",
                "advanced_filters": [{"field": "payer", "operator": "eq", "value": "Aetna"}],
            }
        )

        assert filters == [
            {"field": "date", "operator": "gte", "value": "2024-01-01"},
            {"field": "date", "operator": "lte", "value": "2024-12-31"},
            {"field": "practice_uid", "operator": "in", "value": [114, 115]},
            {"field": "measure", "operator": "eq", "value": "Charges"},
            {"field": "frequency", "operator": "eq", "value": "Monthly"},
            {"field": "payer", "operator": "eq", "value": "Aetna"},
        ]

    def test_empty_values_skipped(self, filter_builder):
        filters = filter_builder.to_chart_filter_array(
            {"start_date": None, "practice_uids": [], "measure": "", "advanced_filters": None}
        )
        assert filters == []

    def test_chart_filter_objects_accepted(self, filter_builder):
        filters = filter_builder.to_chart_filter_array(
            {"advanced_filters": [ChartFilter(field="location", operator="in", value=["A"])]}
        )
        assert filters == [{"field": "location", "operator": "in", "value": ["A"]}]


class TestFromChartFilterArray:
    """Tests for from_chart_filter_array"""

    def test_known_fields_are_lifted(self, filter_builder):
        universal = filter_builder.from_chart_filter_array(
            [
                {"field": "date", "operator": "gte", "value": "2024-01-01"},
                {"field": "date", "operator": "lte", "value": "2024-03-31"},
                {"field": "practice_uid", "operator": "in", "value": [1, 2]},
                {"field": "measure", "operator": "eq", "value": "Charges"},
                {"field": "time_period", "operator": "eq", "value": "Weekly"},
                {"field": "payer", "operator": "neq", "value": "Cash"},
            ]
        )

        assert universal == {
            "start_date": "2024-01-01",
            "end_date": "2024-03-31",
            "practice_uids": [1, 2],
            "measure": "Charges",
            "frequency": "Weekly",
            "advanced_filters": [{"field": "payer", "operator": "neq", "value": "Cash"}],
        }

    def test_known_field_with_other_operator_is_ignored(self, filter_builder):
        universal = filter_builder.from_chart_filter_array(
            [{"field": "date", "operator": "eq", "value": "2024-01-01"}]
        )
        assert universal == {}

    def test_round_trip_through_to_chart_filter_array(self, filter_builder):
        universal = {
            "start_date": "2024-01-01",
            "measure": "Charges",
            "advanced_filters": [{"field": "payer", "operator": "eq", "value": "Aetna"}],
        }
        filters = filter_builder.to_chart_filter_array(universal)
        assert filter_builder.from_chart_filter_array(filters) == universal


class TestMergeFilters:
    """Tests for merge_filters"""

    def test_universal_overrides_chart_and_advanced_filters_concatenate(self):
        merged = FilterBuilder.merge_filters(
            {
                "measure": "Payments",
                "advanced_filters": [{"field": "b", "operator": "eq", "value": 2}],
            },
            {
                "measure": "Charges",
                "frequency": "Monthly",
                "advanced_filters": [{"field": "a", "operator": "eq", "value": 1}],
            },
        )

        assert merged["measure"] == "Payments"
        assert merged["frequency"] == "Monthly"
        assert [f["field"] for f in merged["advanced_filters"]] == ["a", "b"]

    def test_missing_advanced_filters(self):
        merged = FilterBuilder.merge_filters({"measure": "Charges"}, {})
        assert merged == {"measure": "Charges", "advanced_filters": []}
