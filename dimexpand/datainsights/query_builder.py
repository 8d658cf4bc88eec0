from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, literal, or_
from sqlalchemy.sql.functions import Function
from sqlalchemy.sql.expression import (
    table,
    TableClause,
    select,
    Select,
    ColumnClause,
    column,
    asc,
    desc,
)

from dimexpand.core.dimensions.exceptions import FilterValidationError
from dimexpand.schemas.access_schema import AccessScope

# operators accepted in a column filter
ALLOWED_OPERATORS = ["eq", "neq", "gt", "gte", "lt", "lte", "in", "not_in", "like", "between"]

# columns the access scope narrows on
PRACTICE_SCOPE_COLUMN = "practice_uid"
PROVIDER_SCOPE_COLUMN = "provider_uid"


class AggQueryBuilder:
    """
    Aggregate query builder
    Column clauses are aggregates, window functions or grouped columns
    """

    def __init__(self):
        self.column_clauses: list[Function | ColumnClause] = []
        self.select_from: TableClause = None
        self.group_by_clauses: list[ColumnClause] = []
        self.order_by_clauses: list[ColumnClause] = []
        self.limit_records: int = None
        self.offset_records: int = 0
        self.where_clauses: list = []

    def add_column(self, agg_col: Function | ColumnClause):
        """Push a column to select"""
        self.column_clauses.append(agg_col)
        return self

    def add_aggregate_column(self, column_name: str, agg_func: str, alias: str = None):
        """Add an aggregate column with specified function"""
        agg_func_lower = agg_func.lower()

        # COUNT(*) when there is no column to count
        if agg_func_lower == "count" and column_name is None:
            agg_column = func.count()
        else:
            col = column(column_name)

            agg_functions = {
                "sum": func.sum,
                "avg": func.avg,
                "count": func.count,
                "min": func.min,
                "max": func.max,
                "count_distinct": lambda c: func.count(func.distinct(c)),
            }

            if agg_func_lower not in agg_functions:
                raise ValueError(f"Unsupported aggregate function: {agg_func}")

            agg_column = agg_functions[agg_func_lower](col)

        if alias:
            agg_column = agg_column.label(alias)

        self.column_clauses.append(agg_column)
        return self

    def add_total_count_column(self, alias: str = "total_records"):
        """COUNT(*) OVER (); the row count of the whole result, repeated on every row"""
        self.column_clauses.append(func.count().over().label(alias))
        return self

    def fetch_from(self, db_table: str, db_schema: str):
        self.select_from = table(db_table, schema=db_schema)
        return self

    def group_cols_by(self, *cols):
        """Group by the columns"""
        for col in cols:
            if isinstance(col, str):
                self.group_by_clauses.append(column(col))
            else:
                self.group_by_clauses.append(col)
        return self

    def order_cols_by(self, cols: list[tuple[str, str]]):
        """Order by the columns"""
        for col, order in cols:
            if order.lower() == "asc":
                self.order_by_clauses.append(asc(column(col)))
            elif order.lower() == "desc":
                self.order_by_clauses.append(desc(column(col)))
        return self

    def where_clause(self, condition):
        """Add where clause"""
        self.where_clauses.append(condition)
        return self

    def limit_rows(self, limit: int):
        """Limit the number of rows"""
        self.limit_records = limit
        return self

    def offset_rows(self, offset: int):
        """Offset the number of rows"""
        self.offset_records = offset
        return self

    def build(self) -> Select:
        """return the sql statement to be executed; values stay bound parameters"""
        if self.select_from is None:
            raise ValueError("Table to select from is not provided")

        stmt: Select = select(*self.column_clauses)
        stmt = stmt.select_from(self.select_from)

        for where_clause in self.where_clauses:
            stmt = stmt.where(where_clause)

        if len(self.group_by_clauses) > 0:
            stmt = stmt.group_by(*self.group_by_clauses)

        if len(self.order_by_clauses) > 0:
            stmt = stmt.order_by(*self.order_by_clauses)

        if self.limit_records:
            stmt = stmt.slice(self.offset_records, self.offset_records + self.limit_records)

        return stmt


def filter_condition(column_name: str, operator: str, value: Any):
    """
    One where condition for a column filter.
    in / not_in take a list (a comma separated string is split); between takes two values
    """
    col = column(column_name)

    if operator in ("in", "not_in"):
        if isinstance(value, str):
            values = [v.strip() for v in value.split(",") if v.strip()]
        else:
            values = value if isinstance(value, list) else [value]
        if not values:
            # empty IN matches nothing, empty NOT IN matches everything
            return literal(False) if operator == "in" else None
        return col.in_(values) if operator == "in" else ~col.in_(values)

    if operator == "between":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise FilterValidationError("between operator requires exactly 2 values")
        return col.between(value[0], value[1])

    if value is None:
        if operator == "eq":
            return col.is_(None)
        if operator == "neq":
            return col.isnot(None)
        raise FilterValidationError(f"{operator} operator requires a value")

    if operator == "eq":
        return col == value
    if operator == "neq":
        return col != value
    if operator == "gt":
        return col > value
    if operator == "gte":
        return col >= value
    if operator == "lt":
        return col < value
    if operator == "lte":
        return col <= value
    if operator == "like":
        # substring match; % and _ in the value are matched literally
        return col.contains(str(value), autoescape=True)

    raise FilterValidationError(f"Unauthorized operator: {operator}")


def access_scope_conditions(access_scope: AccessScope) -> list:
    """
    Row level security for a caller.
    Callers that see everything get no conditions; a narrowed caller with no
    practices sees no rows at all
    """
    if access_scope.sees_everything:
        return []

    conditions = []
    if access_scope.accessible_practices:
        conditions.append(column(PRACTICE_SCOPE_COLUMN).in_(access_scope.accessible_practices))
    else:
        conditions.append(literal(False))

    if access_scope.accessible_providers:
        conditions.append(
            or_(
                column(PROVIDER_SCOPE_COLUMN).is_(None),
                column(PROVIDER_SCOPE_COLUMN).in_(access_scope.accessible_providers),
            )
        )
    return conditions


def build_where_clauses(
    filters: List[Dict[str, Any]],
    access_scope: AccessScope,
    column_resolver: Callable[[str], Optional[str]],
) -> list:
    """
    Where conditions for the filters plus the caller's access scope.

    column_resolver maps a filter field to the column it filters on, raising
    FilterValidationError for fields that are not columns of the data source;
    a None return means the filter does not apply to this data source and is skipped.
    Only resolved column names ever reach the statement; values are bound parameters
    """
    conditions = access_scope_conditions(access_scope)

    for chart_filter in filters:
        field = chart_filter.get("field")
        operator = chart_filter.get("operator")

        if operator not in ALLOWED_OPERATORS:
            raise FilterValidationError(f"Unauthorized operator: {operator}")
        if not field:
            raise FilterValidationError("Filter field is required")

        column_name = column_resolver(field)
        if column_name is None:
            continue

        condition = filter_condition(column_name, operator, chart_filter.get("value"))
        if condition is not None:
            conditions.append(condition)

    return conditions

