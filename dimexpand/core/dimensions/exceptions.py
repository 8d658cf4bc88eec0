"""Exceptions raised by the dimension expansion engine"""


class DimensionExpansionError(Exception):
    """Base exception for dimension expansion errors"""

    def __init__(self, message: str, error_code: str = "DIMENSION_EXPANSION_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class DimensionExpansionValidationError(DimensionExpansionError):
    """Raised when an expansion request is missing or has invalid inputs"""

    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR")


class DataSourceNotFoundError(DimensionExpansionError):
    """Raised when the data source is missing or inactive"""

    def __init__(self, data_source_id: int):
        super().__init__(f"Data source {data_source_id} not found", "DATA_SOURCE_NOT_FOUND")
        self.data_source_id = data_source_id


class DimensionNotFoundError(DimensionExpansionError):
    """Raised when a column is not an active expansion dimension of the data source"""

    def __init__(self, column_name: str, data_source_id: int):
        super().__init__(
            f"Dimension column {column_name} not found for data source {data_source_id}",
            "DIMENSION_NOT_FOUND",
        )
        self.column_name = column_name
        self.data_source_id = data_source_id


class DimensionColumnMismatchError(DimensionExpansionError):
    """Raised when the requested column name differs from the validated metadata column"""

    def __init__(self, requested: str, validated: str):
        super().__init__(
            f"Column name mismatch: requested {requested}, validated {validated}",
            "DIMENSION_COLUMN_MISMATCH",
        )


class FilterValidationError(DimensionExpansionError):
    """Raised when a filter names a column or operator that is not allowed"""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_FILTER")
