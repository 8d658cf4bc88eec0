"""Tests for the metadata store helpers"""

import os
import uuid
import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dimexpand.settings")
os.environ["DJANGO_ALLOW_ASYNC_UNSAFE"] = "true"
django.setup()

import pytest

from dimexpand.core.dimensions.exceptions import FilterValidationError
from dimexpand.core.dimensions.metadata import (
    get_chart_data_source_id,
    get_data_source,
    get_expansion_column,
    get_expansion_columns,
    get_filter_columns,
    get_saved_chart_config,
    make_column_resolver,
    to_expansion_dimension,
)
from dimexpand.models.chart_definition import ChartDefinition
from dimexpand.models.datasource import DataSource, DataSourceColumn

pytestmark = pytest.mark.django_db


@pytest.fixture
def data_source():
    """An active data source with a mix of columns"""
    data_source = DataSource.objects.create(
        name="Measures", schema_name="analytics", table_name="agg_measures"
    )
    DataSourceColumn.objects.create(
        data_source=data_source,
        column_name="payer",
        display_name="Payer",
        is_expansion_dimension=True,
        sort_order=2,
    )
    DataSourceColumn.objects.create(
        data_source=data_source,
        column_name="location",
        display_name="Location",
        expansion_display_name="Clinic Location",
        is_expansion_dimension=True,
        sort_order=1,
    )
    DataSourceColumn.objects.create(
        data_source=data_source,
        column_name="retired_dim",
        display_name="Retired",
        is_expansion_dimension=True,
        is_active=False,
    )
    DataSourceColumn.objects.create(
        data_source=data_source, column_name="practice_uid", display_name="Practice", data_type="integer"
    )
    DataSourceColumn.objects.create(
        data_source=data_source,
        column_name="frequency",
        display_name="Frequency",
        is_date_field=True,
        is_time_period=True,
    )
    DataSourceColumn.objects.create(
        data_source=data_source,
        column_name="date_index",
        display_name="Date",
        data_type="date",
        is_date_field=True,
    )
    yield data_source
    data_source.delete()


@pytest.fixture
def chart(data_source):
    """A saved chart on the data source"""
    chart = ChartDefinition.objects.create(
        chart_name="Charges by provider",
        chart_type="bar",
        data_source=data_source,
        chart_config={"group_by": "provider"},
    )
    yield chart
    chart.delete()


class TestChartLookup:
    """Tests for chart definition lookups"""

    def test_chart_data_source_id(self, chart, data_source):
        assert get_chart_data_source_id(str(chart.chart_definition_id)) == data_source.id

    def test_unknown_chart(self):
        assert get_chart_data_source_id(str(uuid.uuid4())) == 0

    def test_malformed_chart_id(self):
        assert get_chart_data_source_id("not-a-uuid") == 0

    def test_chart_without_data_source(self):
        chart = ChartDefinition.objects.create(chart_name="orphan")
        assert get_chart_data_source_id(str(chart.chart_definition_id)) == 0
        chart.delete()

    def test_saved_chart_config(self, chart, data_source):
        config = get_saved_chart_config(str(chart.chart_definition_id))
        assert config == {"group_by": "provider", "chart_type": "bar", "data_source_id": data_source.id}

    def test_saved_chart_config_unknown_chart(self):
        assert get_saved_chart_config(str(uuid.uuid4())) is None


class TestExpansionColumns:
    """Tests for expansion column lookups"""

    def test_active_expansion_columns_in_sort_order(self, data_source):
        columns = get_expansion_columns(data_source.id)
        assert [col.column_name for col in columns] == ["location", "payer"]

    def test_expansion_display_name_preferred(self, data_source):
        dimension = to_expansion_dimension(get_expansion_column(data_source.id, "location"))
        assert dimension.display_name == "Clinic Location"
        assert dimension.data_source_id == data_source.id

    def test_inactive_and_non_expansion_columns_not_found(self, data_source):
        assert get_expansion_column(data_source.id, "retired_dim") is None
        assert get_expansion_column(data_source.id, "practice_uid") is None

    def test_inactive_data_source_not_found(self, data_source):
        data_source.is_active = False
        data_source.save()
        assert get_data_source(data_source.id) is None


class TestColumnResolver:
    """Tests for filter field resolution"""

    def test_filter_columns(self, data_source):
        filter_columns = get_filter_columns(data_source.id)

        assert "retired_dim" not in filter_columns["columns"]
        assert filter_columns["date_field"] == "date_index"
        assert filter_columns["time_period_field"] == "frequency"

    def test_resolution(self, data_source):
        resolve = make_column_resolver(get_filter_columns(data_source.id))

        assert resolve("payer") == "payer"
        assert resolve("date") == "date_index"
        assert resolve("frequency") == "frequency"
        assert resolve("time_period") == "frequency"
        assert resolve("measure") is None
        with pytest.raises(FilterValidationError):
            resolve("password")

    def test_date_without_date_column(self):
        resolve = make_column_resolver(
            {"columns": ["payer"], "date_field": None, "time_period_field": None}
        )
        with pytest.raises(FilterValidationError):
            resolve("date")
        assert resolve("frequency") is None
