from typing import Any, Dict, List, Optional, Union

from ninja import Field, Schema

DimensionScalar = Union[int, float, str, bool]


class ChartFilter(Schema):
    """Column filter used by discovery queries and injected by the chart adapter"""

    field: str
    operator: str  # eq, neq, gt, gte, lt, lte, in, not_in, like, between
    value: Any = None


class ExpansionDimension(Schema):
    """A categorical column a chart can be expanded by"""

    column_name: str
    display_name: str
    data_type: str  # string, integer, boolean
    data_source_id: int
    value_count: Optional[int] = None


class DimensionValue(Schema):
    """One distinct value of a dimension, or the synthetic Other bucket"""

    value: DimensionScalar
    label: str
    record_count: Optional[int] = None
    is_other: bool = False


class DimensionValueCombination(Schema):
    """One cell of the cartesian product across several dimensions"""

    values: Dict[str, DimensionScalar]
    label: str
    record_count: Optional[int] = None
    is_other: bool = False
    other_dimensions: List[str] = []
    exclude_values: Dict[str, List[DimensionScalar]] = {}


class AvailableDimensionsResponse(Schema):
    dimensions: List[ExpansionDimension]
    chart_definition_id: str
    data_source_id: int


class DimensionValuesResponse(Schema):
    values: List[DimensionValue]
    dimension: ExpansionDimension
    total_values: int
    filtered: bool
    has_more: bool = False


class ChartExecutionMetadata(Schema):
    measure: Optional[str] = None
    frequency: Optional[str] = None
    group_by: Optional[str] = None


class ChartExecutionConfig(Schema):
    """Unit of work handed to the chart query executor"""

    chart_id: str
    chart_name: str
    chart_type: str
    final_chart_config: Dict[str, Any]
    runtime_filters: Dict[str, Any]
    metadata: ChartExecutionMetadata = Field(default_factory=ChartExecutionMetadata)
    data_source_id: int


class DimensionChartError(Schema):
    message: str
    code: str
    details: Optional[str] = None


class DimensionChartMetadata(Schema):
    record_count: int = 0
    query_time_ms: int = 0
    cache_hit: bool = False
    transform_duration: int = 0


class DimensionExpandedChart(Schema):
    """Result for one value/combination; produced for every attempted branch, even failed ones"""

    dimension_value: Union[DimensionValueCombination, DimensionValue]
    chart_data: Optional[Dict[str, Any]] = None
    error: Optional[DimensionChartError] = None
    metadata: DimensionChartMetadata = Field(default_factory=DimensionChartMetadata)


class DimensionValueSelection(Schema):
    """Restricts a multi-dimension expansion to chosen values of one column"""

    column_name: str
    selected_values: List[DimensionScalar]
    display_name: Optional[str] = None


class DimensionExpansionRequest(Schema):
    final_chart_config: Optional[Dict[str, Any]] = None
    runtime_filters: Optional[Dict[str, Any]] = None
    dimension_column: Optional[str] = None
    limit: Optional[int] = None
    include_other: bool = True


class MultiDimensionExpansionRequest(Schema):
    final_chart_config: Optional[Dict[str, Any]] = None
    runtime_filters: Optional[Dict[str, Any]] = None
    dimension_columns: List[str] = []
    limit: Optional[int] = None
    offset: int = 0
    selections: Optional[List[DimensionValueSelection]] = None
    include_other: bool = True


class ExpansionResultMetadata(Schema):
    total_query_time: int
    parallel_execution: bool = True
    total_charts: int


class MultiExpansionResultMetadata(ExpansionResultMetadata):
    dimension_counts: Dict[str, int] = {}
    total_combinations: int = 0
    offset: int = 0
    limit: int = 0
    has_more: bool = False


class DimensionExpandedChartData(Schema):
    dimension: ExpansionDimension
    charts: List[DimensionExpandedChart]
    metadata: ExpansionResultMetadata


class MultiDimensionExpandedChartData(Schema):
    dimensions: List[ExpansionDimension]
    charts: List[DimensionExpandedChart]
    metadata: MultiExpansionResultMetadata


class ExpandChartPayload(Schema):
    """Body of the expand endpoint; dimension_columns switches to the multi-dimension flow"""

    final_chart_config: Optional[Dict[str, Any]] = None
    runtime_filters: Optional[Dict[str, Any]] = None
    dimension_column: Optional[str] = None
    dimension_columns: Optional[List[str]] = None
    limit: Optional[int] = None
    offset: int = 0
    selections: Optional[List[DimensionValueSelection]] = None
    include_other: bool = True
