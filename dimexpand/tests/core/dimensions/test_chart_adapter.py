"""Tests for DimensionChartAdapter"""

import os
import copy
import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dimexpand.settings")
django.setup()

import pytest

from dimexpand.core.dimensions.chart_adapter import (
    DimensionChartAdapter,
    sanitize_id_token,
    unique_chart_ids,
)
from dimexpand.schemas.dimension_schema import (
    ChartExecutionConfig,
    ChartExecutionMetadata,
    DimensionValue,
    DimensionValueCombination,
)


@pytest.fixture
def base_config():
    """A base chart execution config with one existing advanced filter"""
    return ChartExecutionConfig(
        chart_id="dimension-expansion",
        chart_name="Dimension Expansion",
        chart_type="bar",
        final_chart_config={"data_source_id": 3, "chart_type": "bar", "group_by": "provider"},
        runtime_filters={
            "measure": "Charges",
            "advanced_filters": [{"field": "payer", "operator": "eq", "value": "Aetna"}],
        },
        metadata=ChartExecutionMetadata(measure="Charges", group_by="provider"),
        data_source_id=3,
    )


class TestSanitizeIdToken:
    """Tests for the chart id suffix"""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("Downtown", "downtown"),
            ("St. Mary's Clinic", "st-mary-s-clinic"),
            ("  --North__West--  ", "north_west"),
            ("Downtown - Medical", "downtown-medical"),
            (42, "42"),
            ("***", "value"),
        ],
    )
    def test_sanitize(self, token, expected):
        assert sanitize_id_token(token) == expected

    def test_colliding_tokens_get_position_suffix(self):
        assert unique_chart_ids("base", ["a-b", "x", "a-b"]) == ["base-a-b", "base-x", "base-a-b-2"]


class TestCreateDimensionConfigs:
    """Tests for create_dimension_configs"""

    def test_one_eq_filter_per_value(self, base_config):
        values = [
            DimensionValue(value="Downtown", label="Downtown"),
            DimensionValue(value="Uptown", label="Uptown"),
        ]

        configs = DimensionChartAdapter().create_dimension_configs(values, base_config, "location")

        assert [c.chart_id for c in configs] == [
            "dimension-expansion-downtown",
            "dimension-expansion-uptown",
        ]
        assert configs[0].runtime_filters["advanced_filters"] == [
            {"field": "payer", "operator": "eq", "value": "Aetna"},
            {"field": "location", "operator": "eq", "value": "Downtown"},
        ]
        assert configs[1].runtime_filters["advanced_filters"][-1]["value"] == "Uptown"
        assert configs[0].final_chart_config == base_config.final_chart_config
        assert configs[0].data_source_id == 3
        assert configs[0].metadata.measure == "Charges"

    def test_other_bucket_excludes_exactly_the_enumerated_values(self, base_config):
        values = [
            DimensionValue(value="Downtown", label="Downtown"),
            DimensionValue(value="Uptown", label="Uptown"),
            DimensionValue(value="Midtown", label="Midtown"),
            DimensionValue(value="__other__", label="Other", is_other=True),
        ]

        configs = DimensionChartAdapter().create_dimension_configs(values, base_config, "location")

        other_config = configs[-1]
        assert other_config.chart_id == "dimension-expansion-other"
        assert other_config.runtime_filters["advanced_filters"][-1] == {
            "field": "location",
            "operator": "not_in",
            "value": ["Downtown", "Uptown", "Midtown"],
        }

    def test_base_config_is_never_mutated(self, base_config):
        before = copy.deepcopy(base_config.dict())
        values = [DimensionValue(value="Downtown", label="Downtown")]

        configs = DimensionChartAdapter().create_dimension_configs(values, base_config, "location")
        configs[0].final_chart_config["group_by"] = "changed"

        assert base_config.dict() == before

    def test_missing_or_invalid_advanced_filters_treated_as_empty(self, base_config):
        base_config.runtime_filters = {"advanced_filters": "not-a-list"}
        values = [DimensionValue(value=7, label="7")]

        configs = DimensionChartAdapter().create_dimension_configs(values, base_config, "practice")

        assert configs[0].runtime_filters["advanced_filters"] == [
            {"field": "practice", "operator": "eq", "value": 7}
        ]

    def test_chart_ids_unique_when_values_collide(self, base_config):
        values = [
            DimensionValue(value="A B", label="A B"),
            DimensionValue(value="a-b", label="a-b"),
        ]

        configs = DimensionChartAdapter().create_dimension_configs(values, base_config, "location")

        assert len({c.chart_id for c in configs}) == 2


class TestCreateMultiDimensionConfigs:
    """Tests for create_multi_dimension_configs"""

    def test_one_filter_per_column(self, base_config):
        combination = DimensionValueCombination(
            values={"location": "Downtown", "line_of_business": "Dental"},
            label="Downtown - Dental",
        )

        configs = DimensionChartAdapter().create_multi_dimension_configs([combination], base_config)

        assert configs[0].chart_id == "dimension-expansion-downtown-dental"
        assert configs[0].runtime_filters["advanced_filters"][1:] == [
            {"field": "location", "operator": "eq", "value": "Downtown"},
            {"field": "line_of_business", "operator": "eq", "value": "Dental"},
        ]

    def test_other_column_uses_not_in_exclusions(self, base_config):
        combination = DimensionValueCombination(
            values={"location": "__other__", "line_of_business": "Dental"},
            label="Other - Dental",
            is_other=True,
            other_dimensions=["location"],
            exclude_values={"location": ["Downtown", "Uptown"]},
        )

        configs = DimensionChartAdapter().create_multi_dimension_configs([combination], base_config)

        assert configs[0].runtime_filters["advanced_filters"][1:] == [
            {"field": "location", "operator": "not_in", "value": ["Downtown", "Uptown"]},
            {"field": "line_of_business", "operator": "eq", "value": "Dental"},
        ]

    def test_base_filters_untouched(self, base_config):
        combination = DimensionValueCombination(values={"location": "Downtown"}, label="Downtown")

        DimensionChartAdapter().create_multi_dimension_configs([combination], base_config)

        assert base_config.runtime_filters["advanced_filters"] == [
            {"field": "payer", "operator": "eq", "value": "Aetna"}
        ]
