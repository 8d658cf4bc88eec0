"""
Builds one chart execution config per dimension value or value combination
by appending a filter on the dimension column(s) to a copy of the base config
"""

import copy
import re
from typing import Any, Dict, List

from dimexpand.schemas.dimension_schema import (
    ChartExecutionConfig,
    ChartExecutionMetadata,
    DimensionValue,
    DimensionValueCombination,
)
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.dimensions")

# multi-dimension configs logged at debug level
LOGGED_CONFIG_SAMPLE = 3


def sanitize_id_token(token: str) -> str:
    """lowercase; runs outside [a-z0-9_-] become a single '-', separators trimmed"""
    sanitized = re.sub(r"[^a-z0-9_-]+", "-", str(token).lower())
    sanitized = re.sub(r"([-_])[-_]+", r"\1", sanitized)
    return sanitized.strip("-_") or "value"


def unique_chart_ids(base_id: str, tokens: List[str]) -> List[str]:
    """base_id-token; a token seen before gets its position appended"""
    seen = set()
    chart_ids = []
    for index, token in enumerate(tokens):
        chart_id = f"{base_id}-{token}"
        if chart_id in seen:
            chart_id = f"{chart_id}-{index}"
        seen.add(chart_id)
        chart_ids.append(chart_id)
    return chart_ids


def with_filters(
    base_config: ChartExecutionConfig, chart_id: str, extra_filters: List[Dict[str, Any]]
) -> ChartExecutionConfig:
    """copy of base_config with extra_filters appended to runtime_filters.advanced_filters"""
    runtime_filters = copy.deepcopy(base_config.runtime_filters)
    advanced_filters = runtime_filters.get("advanced_filters")
    if not isinstance(advanced_filters, list):
        advanced_filters = []
    runtime_filters["advanced_filters"] = advanced_filters + extra_filters

    return ChartExecutionConfig(
        chart_id=chart_id,
        chart_name=base_config.chart_name,
        chart_type=base_config.chart_type,
        final_chart_config=copy.deepcopy(base_config.final_chart_config),
        runtime_filters=runtime_filters,
        metadata=ChartExecutionMetadata(**base_config.metadata.dict()),
        data_source_id=base_config.data_source_id,
    )


class DimensionChartAdapter:
    """Turns dimension values into chart execution configs; never mutates its inputs"""

    def create_dimension_configs(
        self,
        values: List[DimensionValue],
        base_config: ChartExecutionConfig,
        column_name: str,
    ) -> List[ChartExecutionConfig]:
        """
        One config per value filtered on column_name == value.
        The Other bucket is filtered on column_name NOT IN every other value
        """
        enumerated = [value.value for value in values if not value.is_other]

        tokens = [
            "other" if value.is_other else sanitize_id_token(value.value) for value in values
        ]
        chart_ids = unique_chart_ids(base_config.chart_id, tokens)

        configs = []
        for value, chart_id in zip(values, chart_ids):
            if value.is_other:
                dimension_filter = {
                    "field": column_name,
                    "operator": "not_in",
                    "value": list(enumerated),
                }
            else:
                dimension_filter = {"field": column_name, "operator": "eq", "value": value.value}
            configs.append(with_filters(base_config, chart_id, [dimension_filter]))

        logger.debug(f"created {len(configs)} dimension configs for {column_name}")
        return configs

    def create_multi_dimension_configs(
        self,
        combinations: List[DimensionValueCombination],
        base_config: ChartExecutionConfig,
    ) -> List[ChartExecutionConfig]:
        """
        One config per combination with a filter for each of its columns;
        columns that are the Other bucket exclude that column's enumerated values
        """
        chart_ids = unique_chart_ids(
            base_config.chart_id,
            [sanitize_id_token(combination.label) for combination in combinations],
        )

        configs = []
        for combination, chart_id in zip(combinations, chart_ids):
            dimension_filters = []
            for column_name, value in combination.values.items():
                if column_name in combination.other_dimensions:
                    dimension_filters.append(
                        {
                            "field": column_name,
                            "operator": "not_in",
                            "value": list(combination.exclude_values.get(column_name, [])),
                        }
                    )
                else:
                    dimension_filters.append(
                        {"field": column_name, "operator": "eq", "value": value}
                    )
            configs.append(with_filters(base_config, chart_id, dimension_filters))

        for config in configs[:LOGGED_CONFIG_SAMPLE]:
            logger.debug(
                f"multi-dimension config {config.chart_id}: "
                f"{config.runtime_filters['advanced_filters']}"
            )
        logger.debug(f"created {len(configs)} multi-dimension configs")
        return configs
