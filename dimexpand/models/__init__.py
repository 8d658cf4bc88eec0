from dimexpand.models.datasource import DataSource, DataSourceColumn
from dimexpand.models.chart_definition import ChartDefinition
from dimexpand.models.access import AnalyticsAccess
