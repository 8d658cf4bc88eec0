"""Dimension expansion API endpoints"""

from typing import Optional, Union

from asgiref.sync import sync_to_async
from ninja import Router
from ninja.errors import HttpError

from dimexpand import auth
from dimexpand.api.expansion_error_handling import handle_expansion_errors
from dimexpand.core.dimensions.discovery_service import DimensionDiscoveryService
from dimexpand.core.dimensions.expansion_renderer import DimensionExpansionRenderer
from dimexpand.core.dimensions.filter_builder import FilterBuilder
from dimexpand.core.dimensions.metadata import get_saved_chart_config
from dimexpand.schemas.dimension_schema import (
    AvailableDimensionsResponse,
    DimensionExpandedChartData,
    DimensionExpansionRequest,
    DimensionValuesResponse,
    ExpandChartPayload,
    MultiDimensionExpandedChartData,
    MultiDimensionExpansionRequest,
)
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.api")

dimension_expansion_router = Router()

discovery_service = DimensionDiscoveryService()
dimension_renderer = DimensionExpansionRenderer(discovery_service=discovery_service)


@dimension_expansion_router.get(
    "/charts/{chart_id}/dimensions",
    response=AvailableDimensionsResponse,
    auth=auth.CustomAuthMiddleware(),
)
@handle_expansion_errors
@auth.has_analytics_access
async def get_chart_dimensions(request, chart_id: str):
    """Expansion dimensions available for a chart"""
    access_scope = request.access_scope
    return await discovery_service.get_chart_expansion_dimensions(chart_id, access_scope)


@dimension_expansion_router.get(
    "/charts/{chart_id}/dimensions/{column_name}/values",
    response=DimensionValuesResponse,
    auth=auth.CustomAuthMiddleware(),
)
@handle_expansion_errors
@auth.has_analytics_access
async def get_chart_dimension_values(
    request,
    chart_id: str,
    column_name: str,
    limit: Optional[int] = None,
    measure: Optional[str] = None,
    frequency: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
):
    """Distinct values of one of the chart's expansion dimensions under the given filters"""
    access_scope = request.access_scope

    available = await discovery_service.get_chart_expansion_dimensions(chart_id, access_scope)
    if available.data_source_id == 0:
        raise HttpError(404, "Chart not found")

    filters = FilterBuilder(access_scope).to_chart_filter_array(
        {
            "start_date": start_date,
            "end_date": end_date,
            "measure": measure,
            "frequency": frequency,
        }
    )
    return await discovery_service.get_dimension_values(
        available.data_source_id, column_name, filters, access_scope, limit
    )


@dimension_expansion_router.post(
    "/charts/{chart_id}/expand",
    response=Union[MultiDimensionExpandedChartData, DimensionExpandedChartData],
    auth=auth.CustomAuthMiddleware(),
)
@handle_expansion_errors
@auth.has_analytics_access
async def expand_chart(request, chart_id: str, payload: ExpandChartPayload):
    """
    Expand a chart by one dimension (dimension_column) or by the combinations
    of several (dimension_columns). Without a final_chart_config the saved one is used
    """
    access_scope = request.access_scope

    final_chart_config = payload.final_chart_config
    if final_chart_config is None:
        final_chart_config = await sync_to_async(get_saved_chart_config)(chart_id)
        if final_chart_config is None:
            raise HttpError(404, "Chart not found")

    if payload.dimension_columns:
        logger.info(f"expanding chart {chart_id} by {payload.dimension_columns}")
        return await dimension_renderer.render_by_multiple_dimensions(
            MultiDimensionExpansionRequest(
                final_chart_config=final_chart_config,
                runtime_filters=payload.runtime_filters,
                dimension_columns=payload.dimension_columns,
                limit=payload.limit,
                offset=payload.offset,
                selections=payload.selections,
                include_other=payload.include_other,
            ),
            access_scope,
        )

    if payload.dimension_column:
        logger.info(f"expanding chart {chart_id} by {payload.dimension_column}")
        return await dimension_renderer.render_by_dimension(
            DimensionExpansionRequest(
                final_chart_config=final_chart_config,
                runtime_filters=payload.runtime_filters,
                dimension_column=payload.dimension_column,
                limit=payload.limit,
                include_other=payload.include_other,
            ),
            access_scope,
        )

    raise HttpError(400, "dimension_column or dimension_columns is required")
