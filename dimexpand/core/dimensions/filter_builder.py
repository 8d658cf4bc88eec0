"""
Conversion between the runtime filter bag a chart is rendered with and
the flat column filter list used by discovery queries

runtime filters look like
    {
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "practice_uids": [114, 115],
        "measure": "Charges by Provider",
        "frequency": "Monthly",
        "advanced_filters": [{"field": "location", "operator": "eq", "value": "Downtown"}],
    }
"""

from typing import Any, Dict, List

from dimexpand.schemas.access_schema import AccessScope
from dimexpand.schemas.dimension_schema import ChartFilter
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.filters")


def as_filter_dict(chart_filter) -> Dict[str, Any]:
    """accepts a ChartFilter or a plain dict"""
    if isinstance(chart_filter, ChartFilter):
        return chart_filter.dict()
    return {
        "field": chart_filter.get("field"),
        "operator": chart_filter.get("operator"),
        "value": chart_filter.get("value"),
    }


class FilterBuilder:
    """Builds discovery filters for one caller"""

    def __init__(self, access_scope: AccessScope):
        self.access_scope = access_scope

    def to_chart_filter_array(self, universal_filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Flatten the runtime filter bag: date range, practice uids, measure,
        frequency, then the advanced filters as they are
        """
        filters = []

        if universal_filters.get("start_date"):
            filters.append(
                {"field": "date", "operator": "gte", "value": universal_filters["start_date"]}
            )
        if universal_filters.get("end_date"):
            filters.append(
                {"field": "date", "operator": "lte", "value": universal_filters["end_date"]}
            )

        practice_uids = universal_filters.get("practice_uids")
        if practice_uids:
            filters.append({"field": "practice_uid", "operator": "in", "value": list(practice_uids)})

        if universal_filters.get("measure"):
            filters.append(
                {"field": "measure", "operator": "eq", "value": universal_filters["measure"]}
            )
        if universal_filters.get("frequency"):
            filters.append(
                {"field": "frequency", "operator": "eq", "value": universal_filters["frequency"]}
            )

        advanced_filters = universal_filters.get("advanced_filters")
        if isinstance(advanced_filters, list):
            filters.extend(as_filter_dict(chart_filter) for chart_filter in advanced_filters)

        return filters

    def from_chart_filter_array(self, filters: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Inverse of to_chart_filter_array; filters it does not recognise become advanced filters"""
        universal_filters: Dict[str, Any] = {}

        for chart_filter in map(as_filter_dict, filters):
            field, operator, value = (
                chart_filter["field"],
                chart_filter["operator"],
                chart_filter["value"],
            )

            if field == "date" and operator == "gte":
                universal_filters["start_date"] = value
            elif field == "date" and operator == "lte":
                universal_filters["end_date"] = value
            elif field == "practice_uid" and operator == "in" and isinstance(value, list):
                universal_filters["practice_uids"] = value
            elif field == "measure" and operator == "eq":
                universal_filters["measure"] = value
            elif field in ("frequency", "time_period") and operator == "eq":
                universal_filters["frequency"] = value
            elif field not in ("date", "practice_uid", "measure", "frequency", "time_period"):
                universal_filters.setdefault("advanced_filters", []).append(chart_filter)

        logger.debug(
            f"Converted {len(filters)} chart filters for user {self.access_scope.user_id}: "
            f"keys={sorted(universal_filters.keys())}"
        )
        return universal_filters

    @staticmethod
    def merge_filters(
        universal_filters: Dict[str, Any], chart_filters: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Chart level filters overridden by the universal (dashboard) filters;
        advanced filters from both are kept, chart ones first
        """
        merged = {**chart_filters, **universal_filters}
        merged["advanced_filters"] = list(chart_filters.get("advanced_filters") or []) + list(
            universal_filters.get("advanced_filters") or []
        )
        return merged
