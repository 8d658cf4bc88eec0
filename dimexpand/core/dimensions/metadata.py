"""
Metadata store reads for dimension expansion

Plain synchronous ORM helpers; the async discovery service calls them through
sync_to_async so they never run on the event loop
"""

from typing import Callable, List, Optional

from django.core.exceptions import ValidationError

from dimexpand.core.dimensions.exceptions import FilterValidationError
from dimexpand.models.chart_definition import ChartDefinition
from dimexpand.models.datasource import DataSource, DataSourceColumn
from dimexpand.schemas.dimension_schema import ExpansionDimension


def to_expansion_dimension(
    col: DataSourceColumn, value_count: Optional[int] = None
) -> ExpansionDimension:
    """expansion_display_name wins over display_name"""
    return ExpansionDimension(
        column_name=col.column_name,
        display_name=col.expansion_display_name or col.display_name,
        data_type=col.data_type,
        data_source_id=col.data_source_id,
        value_count=value_count,
    )


def get_chart_data_source_id(chart_id: str) -> int:
    """data source of an active chart definition; 0 when the chart or its data source is unknown"""
    try:
        chart = ChartDefinition.objects.filter(chart_definition_id=chart_id, is_active=True).first()
    except (ValidationError, ValueError):
        # not a uuid
        return 0
    if chart is None or chart.data_source_id is None:
        return 0
    return chart.data_source_id


def get_data_source(data_source_id: int) -> Optional[DataSource]:
    return DataSource.objects.filter(id=data_source_id, is_active=True).first()


def get_expansion_columns(data_source_id: int) -> List[DataSourceColumn]:
    """active expansion dimension columns in their configured order"""
    return list(
        DataSourceColumn.objects.filter(
            data_source_id=data_source_id, is_expansion_dimension=True, is_active=True
        ).order_by("sort_order", "id")
    )


def get_expansion_column(data_source_id: int, column_name: str) -> Optional[DataSourceColumn]:
    return DataSourceColumn.objects.filter(
        data_source_id=data_source_id,
        column_name=column_name,
        is_expansion_dimension=True,
        is_active=True,
    ).first()


def get_filter_columns(data_source_id: int) -> dict:
    """
    What a filter may reference on this data source:
    every active column, plus the columns behind the `date` and `frequency` pseudo fields
    """
    columns = list(DataSourceColumn.objects.filter(data_source_id=data_source_id, is_active=True))

    time_period_field = next((col.column_name for col in columns if col.is_time_period), None)
    date_candidates = [
        col for col in columns if col.is_date_field and col.column_name != time_period_field
    ]
    date_column = next(
        (
            col
            for col in date_candidates
            if col.column_name in ("date_value", "date_index") or col.data_type == "date"
        ),
        date_candidates[0] if date_candidates else None,
    )

    return {
        "columns": [col.column_name for col in columns],
        "date_field": date_column.column_name if date_column else None,
        "time_period_field": time_period_field,
    }


def make_column_resolver(filter_columns: dict) -> Callable[[str], Optional[str]]:
    """
    Maps filter fields onto columns of the data source.
    Real columns map to themselves; `date` and `frequency` to the configured columns.
    `frequency` and `measure` are dropped on data sources that have no such column
    """
    allowed = set(filter_columns["columns"])

    def resolve(field: str) -> Optional[str]:
        if field in allowed:
            return field
        if field == "date":
            if filter_columns["date_field"] is None:
                raise FilterValidationError("Data source has no date column to filter on")
            return filter_columns["date_field"]
        if field in ("frequency", "time_period"):
            return filter_columns["time_period_field"]
        if field == "measure":
            return None
        raise FilterValidationError(f"Unauthorized field access: {field}")

    return resolve


def get_saved_chart_config(chart_id: str) -> Optional[dict]:
    """
    The stored final chart config of an active chart definition,
    with its data source id and chart type filled in
    """
    data_source_id = get_chart_data_source_id(chart_id)
    if data_source_id == 0:
        return None
    chart = ChartDefinition.objects.get(chart_definition_id=chart_id)
    return {
        **(chart.chart_config or {}),
        "chart_type": chart.chart_type,
        "data_source_id": data_source_id,
    }
