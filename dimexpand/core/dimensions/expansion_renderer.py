"""
Dimension expansion renderer

Expands one chart into one chart per value of a dimension column, or per
combination of values across several columns:

1. validate the base chart config and runtime filters
2. resolve the dimension metadata
3. discover dimension values under the runtime filters and access scope
4. (multi-dimension) build the combinations and cut out the requested page
5. adapt the base config once per value / combination
6. execute the charts concurrently, at most MAX_CONCURRENT_DIMENSION_QUERIES at a time
7. rank successes by record count, append failures, drop empty charts
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from django.conf import settings

from dimexpand.core.dimensions.chart_adapter import DimensionChartAdapter
from dimexpand.core.dimensions.chart_executor import (
    ChartQueryExecutor,
    WarehouseChartQueryExecutor,
)
from dimexpand.core.dimensions.combination_generator import (
    calculate_combination_count,
    generate_dimension_combinations,
)
from dimexpand.core.dimensions.discovery_service import (
    DimensionDiscoveryService,
    clamp_discovery_limit,
)
from dimexpand.core.dimensions.exceptions import DimensionExpansionValidationError
from dimexpand.core.dimensions.filter_builder import FilterBuilder
from dimexpand.schemas.access_schema import AccessScope
from dimexpand.schemas.dimension_schema import (
    ChartExecutionConfig,
    ChartExecutionMetadata,
    DimensionChartError,
    DimensionChartMetadata,
    DimensionExpandedChart,
    DimensionExpandedChartData,
    DimensionExpansionRequest,
    DimensionValue,
    DimensionValueCombination,
    ExpansionDimension,
    ExpansionResultMetadata,
    MultiDimensionExpandedChartData,
    MultiDimensionExpansionRequest,
    MultiExpansionResultMetadata,
)
from dimexpand.utils.constants import (
    DIMENSION_CHART_ERROR_MESSAGE,
    DIMENSION_CHART_RENDER_FAILED,
    DIMENSION_CHART_TIMEOUT,
    DIMENSION_EXPANSION_DEFAULT_PAGE_SIZE,
    DIMENSION_QUERY_TIMEOUT_SECS,
    MAX_CONCURRENT_DIMENSION_QUERIES,
    MAX_DIMENSIONS_PER_EXPANSION,
    MAX_PARALLEL_DIMENSION_CHARTS,
    MAX_TOTAL_COMBINATIONS,
    OTHER_BUCKET_LABEL,
    OTHER_BUCKET_VALUE,
)
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.dimensions")

BASE_CHART_ID = "dimension-expansion"
BASE_CHART_NAME = "Dimension Expansion"

ExpandedValue = Union[DimensionValue, DimensionValueCombination]


def elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)


def build_base_config(
    final_chart_config: Optional[Dict[str, Any]], runtime_filters: Optional[Dict[str, Any]]
) -> ChartExecutionConfig:
    """the chart every expanded chart is derived from"""
    if final_chart_config is None or runtime_filters is None:
        raise DimensionExpansionValidationError(
            "final_chart_config and runtime_filters are required"
        )

    data_source_id = final_chart_config.get("data_source_id")
    if (
        not isinstance(data_source_id, int)
        or isinstance(data_source_id, bool)
        or data_source_id <= 0
    ):
        raise DimensionExpansionValidationError(
            "Invalid data_source_id in provided final_chart_config"
        )

    metadata = ChartExecutionMetadata()
    if isinstance(runtime_filters.get("measure"), str):
        metadata.measure = runtime_filters["measure"]
    if isinstance(runtime_filters.get("frequency"), str):
        metadata.frequency = runtime_filters["frequency"]
    if isinstance(final_chart_config.get("group_by"), str):
        metadata.group_by = final_chart_config["group_by"]

    return ChartExecutionConfig(
        chart_id=BASE_CHART_ID,
        chart_name=BASE_CHART_NAME,
        chart_type=final_chart_config.get("chart_type") or "bar",
        final_chart_config=final_chart_config,
        runtime_filters=runtime_filters,
        metadata=metadata,
        data_source_id=data_source_id,
    )


def build_discovery_filters(
    base_config: ChartExecutionConfig, access_scope: AccessScope
) -> List[Dict[str, Any]]:
    """runtime filters as discovery filters; runtime measure / frequency win over chart metadata"""
    runtime_filters = base_config.runtime_filters
    universal_filters: Dict[str, Any] = {}

    if isinstance(runtime_filters.get("start_date"), str):
        universal_filters["start_date"] = runtime_filters["start_date"]
    if isinstance(runtime_filters.get("end_date"), str):
        universal_filters["end_date"] = runtime_filters["end_date"]
    if isinstance(runtime_filters.get("practice_uids"), list):
        universal_filters["practice_uids"] = runtime_filters["practice_uids"]

    if isinstance(runtime_filters.get("measure"), str):
        universal_filters["measure"] = runtime_filters["measure"]
    elif base_config.metadata.measure:
        universal_filters["measure"] = base_config.metadata.measure

    if isinstance(runtime_filters.get("frequency"), str):
        universal_filters["frequency"] = runtime_filters["frequency"]
    elif base_config.metadata.frequency:
        universal_filters["frequency"] = base_config.metadata.frequency

    if isinstance(runtime_filters.get("advanced_filters"), list):
        universal_filters["advanced_filters"] = runtime_filters["advanced_filters"]

    return FilterBuilder(access_scope).to_chart_filter_array(universal_filters)


def cap_dimension_values(
    values: List[DimensionValue], has_more: bool, include_other: bool, column_name: str
) -> List[DimensionValue]:
    """
    Never more than MAX_PARALLEL_DIMENSION_CHARTS values.
    With include_other, values left out are folded into a trailing Other bucket
    """
    more = has_more or len(values) > MAX_PARALLEL_DIMENSION_CHARTS

    if include_other and more:
        kept = values[: MAX_PARALLEL_DIMENSION_CHARTS - 1]
        logger.info(
            f"{column_name} has more than {len(kept)} values; adding an {OTHER_BUCKET_LABEL} bucket"
        )
        other_bucket = DimensionValue(
            value=OTHER_BUCKET_VALUE, label=OTHER_BUCKET_LABEL, is_other=True
        )
        return kept + [other_bucket]

    if len(values) > MAX_PARALLEL_DIMENSION_CHARTS:
        logger.warning(
            f"{column_name} discovered {len(values)} values, "
            f"truncating to {MAX_PARALLEL_DIMENSION_CHARTS}"
        )
        return values[:MAX_PARALLEL_DIMENSION_CHARTS]

    return values


def apply_selection(values: List[DimensionValue], selected_values: list) -> List[DimensionValue]:
    """values whose string form was selected"""
    selected = {str(value) for value in selected_values}
    return [value for value in values if str(value.value) in selected]


def with_record_count(dimension_value: ExpandedValue, record_count: int) -> ExpandedValue:
    return type(dimension_value)(**{**dimension_value.dict(), "record_count": record_count})


def aggregate_charts(charts: List[DimensionExpandedChart]) -> Tuple[list, dict]:
    """
    Successful charts with records ranked by record_count descending (stable),
    then failed charts in generation order. Charts without records are dropped
    """
    successful = [
        chart for chart in charts if chart.error is None and chart.metadata.record_count > 0
    ]
    errored = [chart for chart in charts if chart.error is not None]
    zero_record = [
        chart for chart in charts if chart.error is None and chart.metadata.record_count == 0
    ]

    ranked = sorted(successful, key=lambda chart: chart.metadata.record_count, reverse=True)
    counts = {
        "successful": len(successful),
        "errored": len(errored),
        "zero_record": len(zero_record),
    }
    return ranked + errored, counts


def dedupe_columns(columns: List[str]) -> List[str]:
    return list(dict.fromkeys(col for col in columns if col))


class DimensionExpansionRenderer:
    """Renders a chart expanded by one or several dimensions"""

    def __init__(
        self,
        discovery_service: DimensionDiscoveryService = None,
        chart_executor: ChartQueryExecutor = None,
        adapter: DimensionChartAdapter = None,
    ):
        self.discovery_service = discovery_service or DimensionDiscoveryService()
        self.chart_executor = chart_executor or WarehouseChartQueryExecutor()
        self.adapter = adapter or DimensionChartAdapter()

    async def discover_values(
        self,
        base_config: ChartExecutionConfig,
        column_name: str,
        discovery_filters: List[Dict[str, Any]],
        access_scope: AccessScope,
        limit: Optional[int],
        include_other: bool,
    ) -> List[DimensionValue]:
        response = await self.discovery_service.get_dimension_values(
            base_config.data_source_id,
            column_name,
            discovery_filters,
            access_scope,
            clamp_discovery_limit(limit),
        )
        return cap_dimension_values(response.values, response.has_more, include_other, column_name)

    async def execute_chart(
        self,
        config: ChartExecutionConfig,
        dimension_value: ExpandedValue,
        access_scope: AccessScope,
    ) -> DimensionExpandedChart:
        """One expanded chart; a failure or timeout becomes an error entry instead of raising"""
        query_start = time.time()
        try:
            result = await asyncio.wait_for(
                self.chart_executor.orchestrate(
                    {
                        "chart_config": config.final_chart_config,
                        "runtime_filters": config.runtime_filters,
                    },
                    access_scope,
                ),
                timeout=DIMENSION_QUERY_TIMEOUT_SECS,
            )
            record_count = int(result["metadata"]["record_count"])
            cache_hit = bool(result["metadata"].get("cache_hit", False))
            transform_duration = int(result["metadata"].get("transform_duration", 0))
        except asyncio.TimeoutError:
            logger.error(
                f"chart {config.chart_id} timed out after {DIMENSION_QUERY_TIMEOUT_SECS}s"
            )
            return self.error_chart(
                dimension_value,
                DIMENSION_CHART_TIMEOUT,
                f"timed out after {DIMENSION_QUERY_TIMEOUT_SECS}s",
                elapsed_ms(query_start),
            )
        except Exception as err:  # one chart failing must not fail the expansion
            logger.error(
                f"failed to render chart {config.chart_id} for "
                f"{dimension_value.label} of user {access_scope.user_id}: {err}"
            )
            return self.error_chart(
                dimension_value, DIMENSION_CHART_RENDER_FAILED, str(err), elapsed_ms(query_start)
            )

        return DimensionExpandedChart(
            dimension_value=with_record_count(dimension_value, record_count),
            chart_data=result,
            metadata=DimensionChartMetadata(
                record_count=record_count,
                query_time_ms=elapsed_ms(query_start),
                cache_hit=cache_hit,
                transform_duration=transform_duration,
            ),
        )

    @staticmethod
    def error_chart(
        dimension_value: ExpandedValue, code: str, details: str, query_time_ms: int
    ) -> DimensionExpandedChart:
        return DimensionExpandedChart(
            dimension_value=dimension_value,
            chart_data=None,
            error=DimensionChartError(
                message=DIMENSION_CHART_ERROR_MESSAGE,
                code=code,
                details=details if settings.ENVIRONMENT != "production" else None,
            ),
            metadata=DimensionChartMetadata(record_count=0, query_time_ms=query_time_ms),
        )

    async def execute_all(
        self,
        configs: List[ChartExecutionConfig],
        dimension_values: List[ExpandedValue],
        access_scope: AccessScope,
    ) -> List[DimensionExpandedChart]:
        """results come back in the order of configs, whatever order they finish in"""
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_DIMENSION_QUERIES)

        async def bounded(config: ChartExecutionConfig, dimension_value: ExpandedValue):
            async with semaphore:
                return await self.execute_chart(config, dimension_value, access_scope)

        return list(
            await asyncio.gather(
                *(bounded(config, value) for config, value in zip(configs, dimension_values))
            )
        )

    async def render_by_dimension(
        self, request: DimensionExpansionRequest, access_scope: AccessScope
    ) -> DimensionExpandedChartData:
        """one chart per value of request.dimension_column"""
        start_time = time.time()
        try:
            base_config = build_base_config(request.final_chart_config, request.runtime_filters)
            if not request.dimension_column:
                raise DimensionExpansionValidationError("dimension_column is required")
            column_name = request.dimension_column

            logger.info(
                f"expanding {base_config.chart_type} chart on data source "
                f"{base_config.data_source_id} by {column_name}"
            )

            dimension = await self.discovery_service.get_dimension(
                base_config.data_source_id, column_name
            )
            discovery_filters = build_discovery_filters(base_config, access_scope)
            values = await self.discover_values(
                base_config,
                column_name,
                discovery_filters,
                access_scope,
                request.limit,
                request.include_other,
            )

            if len(values) == 0:
                logger.warning(f"no values found for dimension {column_name}")
                return DimensionExpandedChartData(
                    dimension=dimension,
                    charts=[],
                    metadata=ExpansionResultMetadata(total_query_time=0, total_charts=0),
                )

            configs = self.adapter.create_dimension_configs(values, base_config, column_name)
            charts = await self.execute_all(configs, values, access_scope)
        except Exception as err:
            logger.error(f"dimension expansion by {request.dimension_column} failed: {err}")
            raise

        ranked, counts = aggregate_charts(charts)
        total_query_time = elapsed_ms(start_time)
        logger.info(
            f"expanded by {column_name}: {len(charts)} charts, {counts['successful']} successful, "
            f"{counts['errored']} errored, {counts['zero_record']} without records "
            f"in {total_query_time}ms"
        )

        return DimensionExpandedChartData(
            dimension=dimension,
            charts=ranked,
            metadata=ExpansionResultMetadata(
                total_query_time=total_query_time, total_charts=len(ranked)
            ),
        )

    async def render_by_multiple_dimensions(
        self, request: MultiDimensionExpansionRequest, access_scope: AccessScope
    ) -> MultiDimensionExpandedChartData:
        """
        One chart per combination of values across request.dimension_columns.
        Only the page [offset, offset + limit) of the ranked combinations is executed
        """
        start_time = time.time()
        columns = dedupe_columns(request.dimension_columns or [])
        try:
            base_config = build_base_config(request.final_chart_config, request.runtime_filters)
            if not columns:
                raise DimensionExpansionValidationError("dimension_columns are required")
            if len(columns) > MAX_DIMENSIONS_PER_EXPANSION:
                raise DimensionExpansionValidationError(
                    f"At most {MAX_DIMENSIONS_PER_EXPANSION} dimensions can be expanded at once"
                )

            page_limit = min(
                max(request.limit or DIMENSION_EXPANSION_DEFAULT_PAGE_SIZE, 1),
                MAX_PARALLEL_DIMENSION_CHARTS,
            )
            offset = max(request.offset or 0, 0)

            logger.info(
                f"expanding {base_config.chart_type} chart on data source "
                f"{base_config.data_source_id} by {columns} (offset={offset}, limit={page_limit})"
            )

            discovery_filters = build_discovery_filters(base_config, access_scope)

            async def discover_column(column_name: str):
                dimension = await self.discovery_service.get_dimension(
                    base_config.data_source_id, column_name
                )
                values = await self.discover_values(
                    base_config,
                    column_name,
                    discovery_filters,
                    access_scope,
                    None,
                    request.include_other,
                )
                return dimension, values

            discovered = await asyncio.gather(*(discover_column(col) for col in columns))
            dimensions: List[ExpansionDimension] = [dimension for dimension, _ in discovered]
            values_by_column = {col: values for col, (_, values) in zip(columns, discovered)}
            # Other buckets keep excluding every discovered value, selected or not
            non_other_values = {
                col: [value.value for value in values if not value.is_other]
                for col, values in values_by_column.items()
            }

            for selection in request.selections or []:
                if selection.column_name in values_by_column:
                    values_by_column[selection.column_name] = apply_selection(
                        values_by_column[selection.column_name], selection.selected_values
                    )

            dimension_counts = {col: len(values) for col, values in values_by_column.items()}

            if any(count == 0 for count in dimension_counts.values()):
                logger.warning(f"no combinations possible, value counts {dimension_counts}")
                return MultiDimensionExpandedChartData(
                    dimensions=dimensions,
                    charts=[],
                    metadata=MultiExpansionResultMetadata(
                        total_query_time=0,
                        total_charts=0,
                        dimension_counts=dimension_counts,
                        total_combinations=0,
                        offset=offset,
                        limit=page_limit,
                        has_more=False,
                    ),
                )

            combination_count = calculate_combination_count(values_by_column)
            if combination_count > MAX_TOTAL_COMBINATIONS:
                logger.warning(
                    f"{combination_count} combinations across {columns} exceed "
                    f"{MAX_TOTAL_COMBINATIONS}; only the first {MAX_TOTAL_COMBINATIONS} are generated"
                )
            combinations = generate_dimension_combinations(
                values_by_column,
                max_combinations=MAX_TOTAL_COMBINATIONS,
                non_other_values=non_other_values,
            )
            combinations = sorted(
                combinations, key=lambda combination: combination.record_count or 0, reverse=True
            )

            page = combinations[offset : offset + page_limit]
            has_more = offset + page_limit < len(combinations)

            charts = []
            if page:
                configs = self.adapter.create_multi_dimension_configs(page, base_config)
                charts = await self.execute_all(configs, page, access_scope)
        except Exception as err:
            logger.error(f"multi-dimension expansion by {columns} failed: {err}")
            raise

        ranked, counts = aggregate_charts(charts)
        total_query_time = elapsed_ms(start_time)
        logger.info(
            f"expanded by {columns}: page of {len(page)} out of {len(combinations)} combinations, "
            f"{counts['successful']} successful, {counts['errored']} errored, "
            f"{counts['zero_record']} without records in {total_query_time}ms"
        )

        return MultiDimensionExpandedChartData(
            dimensions=dimensions,
            charts=ranked,
            metadata=MultiExpansionResultMetadata(
                total_query_time=total_query_time,
                total_charts=len(ranked),
                dimension_counts=dimension_counts,
                total_combinations=len(combinations),
                offset=offset,
                limit=page_limit,
                has_more=has_more,
            ),
        )
