"""Data source metadata models for dimension expansion"""

from enum import Enum
from django.db import models


class DataSourceType(str, Enum):
    """How a data source stores its measures"""

    MEASURE_BASED = "measure-based"
    TABLE_BASED = "table-based"

    @classmethod
    def choices(cls):
        """django model definition needs an iterable for `choices`"""
        return [(key.value, key.name) for key in cls]


class ColumnDataType(str, Enum):
    """Column data types; only these are eligible as expansion dimensions"""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    DECIMAL = "decimal"

    @classmethod
    def choices(cls):
        """django model definition needs an iterable for `choices`"""
        return [(key.value, key.name) for key in cls]


class DataSource(models.Model):
    """A table in the analytics store that charts can be built on"""

    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    schema_name = models.CharField(max_length=255)
    table_name = models.CharField(max_length=255)
    data_source_type = models.CharField(
        max_length=20,
        choices=DataSourceType.choices(),
        default=DataSourceType.TABLE_BASED.value,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.schema_name}.{self.table_name})"


class DataSourceColumn(models.Model):
    """Column metadata for a data source; flags which columns charts may expand by"""

    id = models.BigAutoField(primary_key=True)
    data_source = models.ForeignKey(DataSource, on_delete=models.CASCADE, related_name="columns")
    column_name = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255)
    expansion_display_name = models.CharField(max_length=255, blank=True, null=True)
    data_type = models.CharField(
        max_length=20, choices=ColumnDataType.choices(), default=ColumnDataType.STRING.value
    )

    is_expansion_dimension = models.BooleanField(default=False)
    is_date_field = models.BooleanField(default=False)
    is_time_period = models.BooleanField(default=False)
    is_measure = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("data_source", "column_name")
        ordering = ["sort_order", "id"]

    def __str__(self):
        return f"{self.data_source_id}:{self.column_name}"
