"""Chart definition model"""

import uuid
from django.db import models

from dimexpand.models.datasource import DataSource

CHART_TYPE_CHOICES = [
    ("bar", "Bar Chart"),
    ("stacked-bar", "Stacked Bar Chart"),
    ("horizontal-bar", "Horizontal Bar Chart"),
    ("line", "Line Chart"),
    ("area", "Area Chart"),
    ("pie", "Pie Chart"),
    ("doughnut", "Doughnut Chart"),
    ("table", "Table"),
    ("number", "Number"),
]


class ChartDefinition(models.Model):
    """A saved chart; its data source decides which dimensions it can expand by"""

    chart_definition_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chart_name = models.CharField(max_length=255)
    chart_description = models.TextField(blank=True, null=True)
    chart_type = models.CharField(max_length=20, choices=CHART_TYPE_CHOICES, default="bar")
    data_source = models.ForeignKey(
        DataSource,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="chart_definitions",
    )
    chart_config = models.JSONField(default=dict, help_text="Final chart config used for rendering")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.chart_name} ({self.chart_type})"
