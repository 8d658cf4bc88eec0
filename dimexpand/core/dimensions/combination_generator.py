"""Cartesian product of dimension values for multi-dimension expansion"""

from functools import reduce
from itertools import islice, product
from typing import Dict, List, Optional

from dimexpand.schemas.dimension_schema import DimensionValue, DimensionValueCombination
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.dimensions")

COMBINATION_LABEL_SEPARATOR = " - "


def calculate_combination_count(values_by_column: Dict[str, List[DimensionValue]]) -> int:
    """
    Number of combinations generate_dimension_combinations would produce.
    Cheap; lets the renderer reject runaway expansions before building anything
    """
    if not values_by_column:
        return 0
    return reduce(lambda acc, values: acc * len(values), values_by_column.values(), 1)


def estimate_record_count(values: List[DimensionValue]) -> Optional[int]:
    """
    Upper bound on the rows matching every value at once: the smallest known count.
    Only a ranking hint; None when no value carries a count
    """
    known = [value.record_count for value in values if value.record_count is not None]
    if not known:
        return None
    return min(known)


def build_combination(columns: List[str], values: List[DimensionValue], non_other_values: dict):
    """one combination from the values picked for each column, in column order"""
    other_dimensions = [col for col, value in zip(columns, values) if value.is_other]

    return DimensionValueCombination(
        values={col: value.value for col, value in zip(columns, values)},
        label=COMBINATION_LABEL_SEPARATOR.join(value.label for value in values),
        record_count=estimate_record_count(values),
        is_other=len(other_dimensions) > 0,
        other_dimensions=other_dimensions,
        exclude_values={col: list(non_other_values[col]) for col in other_dimensions},
    )


def generate_dimension_combinations(
    values_by_column: Dict[str, List[DimensionValue]],
    max_combinations: Optional[int] = None,
    non_other_values: Optional[Dict[str, list]] = None,
) -> List[DimensionValueCombination]:
    """
    Cartesian product of the values of every column.

    Columns vary slowest-first in the order of values_by_column. A column's Other
    bucket yields a combination that excludes that column's enumerated values.
    max_combinations stops generation early when given.
    non_other_values overrides what each Other bucket excludes; pass every
    discovered value when values_by_column has been narrowed by a selection
    """
    if calculate_combination_count(values_by_column) == 0:
        return []

    columns = list(values_by_column.keys())
    if non_other_values is None:
        non_other_values = {
            col: [value.value for value in values if not value.is_other]
            for col, values in values_by_column.items()
        }

    cells = product(*(values_by_column[col] for col in columns))
    if max_combinations is not None:
        cells = islice(cells, max(max_combinations, 0))

    combinations = [build_combination(columns, list(cell), non_other_values) for cell in cells]

    logger.debug(
        f"Generated {len(combinations)} combinations across {len(columns)} dimensions: {columns}"
    )
    return combinations
