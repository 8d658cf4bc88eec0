"""
Dimension discovery

Finds which columns of a chart's data source can be expanded by, and the
distinct values of one such column under the current filters and access scope
"""

import time
from typing import Any, Dict, List, Optional

from asgiref.sync import sync_to_async
from sqlalchemy import column

from dimexpand.core.dimensions.exceptions import (
    DataSourceNotFoundError,
    DimensionColumnMismatchError,
    DimensionNotFoundError,
)
from dimexpand.core.dimensions.metadata import (
    get_chart_data_source_id,
    get_data_source,
    get_expansion_column,
    get_expansion_columns,
    get_filter_columns,
    make_column_resolver,
    to_expansion_dimension,
)
from dimexpand.core.dimensions.value_cache import DimensionValueCache
from dimexpand.datainsights.query_builder import AggQueryBuilder, build_where_clauses
from dimexpand.datainsights.warehouse.warehouse_factory import ConnectionPooledWarehouseFactory
from dimexpand.datainsights.warehouse.warehouse_interface import Warehouse
from dimexpand.schemas.access_schema import AccessScope
from dimexpand.schemas.dimension_schema import (
    AvailableDimensionsResponse,
    DimensionValue,
    DimensionValuesResponse,
    ExpansionDimension,
)
from dimexpand.utils.constants import (
    DIMENSION_EXPANSION_DEFAULT_LIMIT,
    DIMENSION_EXPANSION_MAX_LIMIT,
    DIMENSION_VALUE_CACHE_ENABLED,
)
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.dimensions")


def clamp_discovery_limit(limit: Optional[int]) -> int:
    """requested limit pulled into [1, DIMENSION_EXPANSION_MAX_LIMIT]"""
    return min(max(limit or DIMENSION_EXPANSION_DEFAULT_LIMIT, 1), DIMENSION_EXPANSION_MAX_LIMIT)


def build_dimension_values_query(
    schema_name: str,
    table_name: str,
    column_name: str,
    where_clauses: list,
    limit: int,
):
    """
    SELECT <col> AS value, COUNT(*) AS record_count, COUNT(*) OVER () AS distinct_values
    FROM <schema>.<table> WHERE ... GROUP BY <col>
    ORDER BY record_count DESC, <col> ASC LIMIT <limit>
    """
    query_builder = (
        AggQueryBuilder()
        .add_column(column(column_name).label("value"))
        .add_aggregate_column(None, "count", "record_count")
        .add_total_count_column("distinct_values")
        .fetch_from(table_name, schema_name)
        .group_cols_by(column_name)
        .order_cols_by([("record_count", "desc"), (column_name, "asc")])
        .limit_rows(limit)
    )
    for where_clause in where_clauses:
        query_builder.where_clause(where_clause)
    return query_builder.build()


class DimensionDiscoveryService:
    """Discovers expansion dimensions and their values"""

    def __init__(
        self,
        warehouse: Warehouse = None,
        value_cache: DimensionValueCache = None,
        use_cache: bool = DIMENSION_VALUE_CACHE_ENABLED,
    ):
        self._warehouse = warehouse
        self.value_cache = (value_cache or DimensionValueCache()) if use_cache else None

    @property
    def warehouse(self) -> Warehouse:
        if self._warehouse is None:
            self._warehouse = ConnectionPooledWarehouseFactory.get_warehouse_client()
        return self._warehouse

    async def get_chart_expansion_dimensions(
        self, chart_id: str, access_scope: AccessScope
    ) -> AvailableDimensionsResponse:
        """
        Expansion dimensions of the chart's data source.
        An unknown chart, or one without a data source, has no dimensions
        """
        start_time = time.time()
        try:
            data_source_id = await sync_to_async(get_chart_data_source_id)(chart_id)

            if data_source_id == 0:
                logger.warning(f"chart {chart_id} not found or has no data source")
                return AvailableDimensionsResponse(
                    dimensions=[], chart_definition_id=chart_id, data_source_id=0
                )

            dimensions = await self.get_data_source_expansion_dimensions(data_source_id)
        except Exception as err:
            logger.error(f"failed to discover expansion dimensions for chart {chart_id}: {err}")
            raise

        duration = int((time.time() - start_time) * 1000)
        logger.info(
            f"chart {chart_id} on data source {data_source_id} has {len(dimensions)} "
            f"expansion dimensions {[dim.column_name for dim in dimensions]} in {duration}ms"
        )
        return AvailableDimensionsResponse(
            dimensions=dimensions, chart_definition_id=chart_id, data_source_id=data_source_id
        )

    async def get_data_source_expansion_dimensions(
        self, data_source_id: int
    ) -> List[ExpansionDimension]:
        columns = await sync_to_async(get_expansion_columns)(data_source_id)
        return [to_expansion_dimension(col) for col in columns]

    async def get_dimension(self, data_source_id: int, column_name: str) -> ExpansionDimension:
        """metadata of one expansion dimension; raises DimensionNotFoundError"""
        col = await sync_to_async(get_expansion_column)(data_source_id, column_name)
        if col is None:
            raise DimensionNotFoundError(column_name, data_source_id)
        return to_expansion_dimension(col)

    async def get_dimension_values(
        self,
        data_source_id: int,
        column_name: str,
        filters: List[Dict[str, Any]],
        access_scope: AccessScope,
        limit: int = None,
    ) -> DimensionValuesResponse:
        """
        Distinct values of an expansion dimension with their row counts,
        busiest first (ties by value).

        At most `limit` values (clamped) are returned; has_more says whether
        the column has values beyond them
        """
        start_time = time.time()
        validated_limit = clamp_discovery_limit(limit)

        try:
            # checked before the cache so a deactivated column stops answering at once
            dimension_col = await sync_to_async(get_expansion_column)(data_source_id, column_name)
            if dimension_col is None:
                raise DimensionNotFoundError(column_name, data_source_id)

            # only a column name read back from metadata is ever put into the query
            if dimension_col.column_name != column_name:
                raise DimensionColumnMismatchError(column_name, dimension_col.column_name)
            validated_column = dimension_col.column_name

            cache_key = None
            if self.value_cache is not None:
                cache_key = DimensionValueCache.build_key(
                    data_source_id, validated_column, filters, access_scope, validated_limit
                )
                cached = await sync_to_async(self.value_cache.get, thread_sensitive=False)(
                    cache_key
                )
                if cached is not None:
                    logger.info(
                        f"dimension values for {data_source_id}:{validated_column} "
                        "served from cache"
                    )
                    return cached

            data_source = await sync_to_async(get_data_source)(data_source_id)
            if data_source is None:
                raise DataSourceNotFoundError(data_source_id)

            filter_columns = await sync_to_async(get_filter_columns)(data_source_id)
            where_clauses = build_where_clauses(
                filters, access_scope, make_column_resolver(filter_columns)
            )

            # one extra row tells us whether there is more than the limit
            stmt = build_dimension_values_query(
                data_source.schema_name,
                data_source.table_name,
                validated_column,
                where_clauses,
                validated_limit + 1,
            )
            logger.debug(f"dimension values query for {data_source_id}:{validated_column}: {stmt}")

            rows = await sync_to_async(self.warehouse.execute, thread_sensitive=False)(stmt)
        except Exception as err:
            logger.error(
                f"failed to discover values of {column_name} on data source {data_source_id}: {err}"
            )
            raise

        has_more = len(rows) > validated_limit
        values = [
            DimensionValue(
                value=row["value"], label=str(row["value"]), record_count=int(row["record_count"])
            )
            for row in rows[:validated_limit]
            if row["value"] is not None
        ]
        distinct_values = rows[0]["distinct_values"] if rows else 0

        response = DimensionValuesResponse(
            values=values,
            dimension=to_expansion_dimension(dimension_col, value_count=len(values)),
            total_values=len(values),
            filtered=not access_scope.sees_everything,
            has_more=has_more,
        )

        duration = int((time.time() - start_time) * 1000)
        logger.info(
            f"discovered {len(values)} values of {validated_column} on data source {data_source_id} "
            f"(distinct_values={distinct_values}, has_more={has_more}) in {duration}ms"
        )

        if cache_key is not None:
            await sync_to_async(self.value_cache.set, thread_sensitive=False)(cache_key, response)

        return response
