"""
Chart query execution for expanded charts

The renderer only relies on ChartQueryExecutor.orchestrate; WarehouseChartQueryExecutor
is the default, a single grouped aggregate over the chart's data source
"""

import time
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List

from asgiref.sync import sync_to_async
from sqlalchemy import column

from dimexpand.core.dimensions.exceptions import (
    DataSourceNotFoundError,
    DimensionExpansionValidationError,
    FilterValidationError,
)
from dimexpand.core.dimensions.filter_builder import FilterBuilder
from dimexpand.core.dimensions.metadata import (
    get_data_source,
    get_filter_columns,
    make_column_resolver,
)
from dimexpand.datainsights.query_builder import AggQueryBuilder, build_where_clauses
from dimexpand.datainsights.warehouse.warehouse_factory import ConnectionPooledWarehouseFactory
from dimexpand.datainsights.warehouse.warehouse_interface import Warehouse
from dimexpand.schemas.access_schema import AccessScope
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.charts")

# rows returned for one chart
MAX_CHART_ROWS = 1000


def convert_value(value: Any) -> Any:
    """JSON-serializable form of a warehouse value"""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class ChartQueryExecutor(ABC):
    """Turns one chart config plus runtime filters into chart data"""

    @abstractmethod
    async def orchestrate(self, request: Dict[str, Any], access_scope: AccessScope) -> dict:
        """
        request is {"chart_config": dict, "runtime_filters": dict}.
        The result must carry metadata.record_count and metadata.cache_hit;
        failures are raised, never returned
        """


class WarehouseChartQueryExecutor(ChartQueryExecutor):
    """
    Runs
        SELECT <group_by> AS label, <agg>(<col>) AS value, COUNT(*) AS record_count
        FROM <data source> WHERE <filters + access scope> GROUP BY <group_by>
    chart_config keys: data_source_id, chart_type, group_by (optional),
    aggregation {"column", "function"} (COUNT(*) when absent)
    """

    def __init__(self, warehouse: Warehouse = None):
        self._warehouse = warehouse

    @property
    def warehouse(self) -> Warehouse:
        if self._warehouse is None:
            self._warehouse = ConnectionPooledWarehouseFactory.get_warehouse_client()
        return self._warehouse

    def build_query(
        self, data_source, chart_config: dict, filter_columns: dict, where_clauses: list
    ):
        allowed = set(filter_columns["columns"])
        group_by = chart_config.get("group_by")
        aggregation = chart_config.get("aggregation") or {}
        agg_column = aggregation.get("column")
        agg_function = aggregation.get("function", "count")

        for col in (group_by, agg_column):
            if col is not None and col not in allowed:
                raise FilterValidationError(f"Unauthorized field access: {col}")

        query_builder = AggQueryBuilder().fetch_from(data_source.table_name, data_source.schema_name)
        if group_by:
            query_builder.add_column(column(group_by).label("label"))
        query_builder.add_aggregate_column(agg_column, agg_function, "value")
        query_builder.add_aggregate_column(None, "count", "record_count")
        for where_clause in where_clauses:
            query_builder.where_clause(where_clause)
        if group_by:
            query_builder.group_cols_by(group_by).order_cols_by([(group_by, "asc")])
        query_builder.limit_rows(MAX_CHART_ROWS)

        return query_builder.build()

    @staticmethod
    def transform(chart_config: dict, rows: List[dict]) -> Dict[str, Any]:
        """labels + a single dataset; record_count is the number of source rows aggregated"""
        rows = [{key: convert_value(val) for key, val in row.items()} for row in rows]
        aggregation = chart_config.get("aggregation") or {}
        dataset_label = (
            chart_config.get("measure")
            or f"{aggregation.get('function', 'count')}_{aggregation.get('column') or 'all'}"
        )
        return {
            "chart_type": chart_config.get("chart_type", "bar"),
            "labels": [row.get("label") for row in rows],
            "datasets": [{"label": dataset_label, "data": [row["value"] for row in rows]}],
            "raw_data": rows,
            "record_count": sum(row["record_count"] or 0 for row in rows),
        }

    async def orchestrate(self, request: Dict[str, Any], access_scope: AccessScope) -> dict:
        chart_config = request.get("chart_config") or {}
        runtime_filters = request.get("runtime_filters") or {}

        data_source_id = chart_config.get("data_source_id")
        if not isinstance(data_source_id, int) or data_source_id <= 0:
            raise DimensionExpansionValidationError("chart_config.data_source_id is required")

        data_source = await sync_to_async(get_data_source)(data_source_id)
        if data_source is None:
            raise DataSourceNotFoundError(data_source_id)
        filter_columns = await sync_to_async(get_filter_columns)(data_source_id)

        filters = FilterBuilder(access_scope).to_chart_filter_array(runtime_filters)
        where_clauses = build_where_clauses(
            filters, access_scope, make_column_resolver(filter_columns)
        )
        stmt = self.build_query(data_source, chart_config, filter_columns, where_clauses)

        query_start = time.time()
        rows = await sync_to_async(self.warehouse.execute, thread_sensitive=False)(stmt)
        query_time_ms = int((time.time() - query_start) * 1000)

        transform_start = time.time()
        chart_data = self.transform(chart_config, rows)
        record_count = chart_data.pop("record_count")

        chart_data["metadata"] = {
            "record_count": record_count,
            "cache_hit": False,
            "query_time_ms": query_time_ms,
            "transform_duration": int((time.time() - transform_start) * 1000),
        }
        logger.debug(
            f"chart on data source {data_source_id} returned {len(rows)} rows "
            f"({record_count} records) in {query_time_ms}ms"
        )
        return chart_data
