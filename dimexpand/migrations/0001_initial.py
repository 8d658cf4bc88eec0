# Generated migration for dimension expansion metadata models

import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DataSource",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("schema_name", models.CharField(max_length=255)),
                ("table_name", models.CharField(max_length=255)),
                (
                    "data_source_type",
                    models.CharField(
                        choices=[
                            ("measure-based", "MEASURE_BASED"),
                            ("table-based", "TABLE_BASED"),
                        ],
                        default="table-based",
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="DataSourceColumn",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("column_name", models.CharField(max_length=255)),
                ("display_name", models.CharField(max_length=255)),
                (
                    "expansion_display_name",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "data_type",
                    models.CharField(
                        choices=[
                            ("string", "STRING"),
                            ("integer", "INTEGER"),
                            ("boolean", "BOOLEAN"),
                            ("date", "DATE"),
                            ("decimal", "DECIMAL"),
                        ],
                        default="string",
                        max_length=20,
                    ),
                ),
                ("is_expansion_dimension", models.BooleanField(default=False)),
                ("is_date_field", models.BooleanField(default=False)),
                ("is_time_period", models.BooleanField(default=False)),
                ("is_measure", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("sort_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "data_source",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="columns",
                        to="dimexpand.datasource",
                    ),
                ),
            ],
            options={
                "ordering": ["sort_order", "id"],
                "unique_together": {("data_source", "column_name")},
            },
        ),
        migrations.CreateModel(
            name="ChartDefinition",
            fields=[
                (
                    "chart_definition_id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("chart_name", models.CharField(max_length=255)),
                ("chart_description", models.TextField(blank=True, null=True)),
                (
                    "chart_type",
                    models.CharField(
                        choices=[
                            ("bar", "Bar Chart"),
                            ("stacked-bar", "Stacked Bar Chart"),
                            ("horizontal-bar", "Horizontal Bar Chart"),
                            ("line", "Line Chart"),
                            ("area", "Area Chart"),
                            ("pie", "Pie Chart"),
                            ("doughnut", "Doughnut Chart"),
                            ("table", "Table"),
                            ("number", "Number"),
                        ],
                        default="bar",
                        max_length=20,
                    ),
                ),
                (
                    "chart_config",
                    models.JSONField(
                        default=dict, help_text="Final chart config used for rendering"
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "data_source",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="chart_definitions",
                        to="dimexpand.datasource",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="AnalyticsAccess",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "permission_scope",
                    models.CharField(
                        choices=[
                            ("all", "ALL"),
                            ("organization", "ORGANIZATION"),
                            ("own", "OWN"),
                            ("none", "NONE"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                ("accessible_practices", models.JSONField(default=list)),
                ("accessible_providers", models.JSONField(default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="analytics_access",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
    ]
