import os

# number of dimension values discovered when the caller does not ask for a limit
DIMENSION_EXPANSION_DEFAULT_LIMIT = int(os.getenv("DIMENSION_EXPANSION_DEFAULT_LIMIT", "20"))

# hard ceiling on the discovery limit, whatever the caller asks for
DIMENSION_EXPANSION_MAX_LIMIT = int(os.getenv("DIMENSION_EXPANSION_MAX_LIMIT", "50"))

# no expansion ever executes more charts than this in one call
MAX_PARALLEL_DIMENSION_CHARTS = int(os.getenv("MAX_PARALLEL_DIMENSION_CHARTS", "20"))

# in-flight chart queries per expansion; protects the analytics connection pool
MAX_CONCURRENT_DIMENSION_QUERIES = int(os.getenv("MAX_CONCURRENT_DIMENSION_QUERIES", "5"))

# columns accepted by a single multi-dimension expansion
MAX_DIMENSIONS_PER_EXPANSION = int(os.getenv("MAX_DIMENSIONS_PER_EXPANSION", "3"))

# combinations generated (not executed) before the explosion guard kicks in
MAX_TOTAL_COMBINATIONS = int(os.getenv("MAX_TOTAL_COMBINATIONS", "500"))

# page size for multi-dimension expansion when the caller sends no limit
DIMENSION_EXPANSION_DEFAULT_PAGE_SIZE = int(os.getenv("DIMENSION_EXPANSION_DEFAULT_PAGE_SIZE", "12"))

# per-branch timeout; a slow chart becomes an error entry instead of stalling the response
DIMENSION_QUERY_TIMEOUT_SECS = float(os.getenv("DIMENSION_QUERY_TIMEOUT_SECS", "30"))

# dimension value cache
DIMENSION_VALUE_CACHE_TTL = int(os.getenv("DIMENSION_VALUE_CACHE_TTL", "3600"))
DIMENSION_VALUE_CACHE_ENABLED = os.getenv("DIMENSION_VALUE_CACHE_ENABLED", "true").lower() == "true"

# synthetic "everything else" bucket
OTHER_BUCKET_VALUE = "__other__"
OTHER_BUCKET_LABEL = "Other"

# user facing error for a failed dimension chart
DIMENSION_CHART_ERROR_MESSAGE = "Failed to load chart data"
DIMENSION_CHART_RENDER_FAILED = "DIMENSION_CHART_RENDER_FAILED"
DIMENSION_CHART_TIMEOUT = "DIMENSION_CHART_TIMEOUT"

# permission scopes carried on an access scope
PERMISSION_SCOPE_ALL = "all"
PERMISSION_SCOPE_ORGANIZATION = "organization"
PERMISSION_SCOPE_OWN = "own"
PERMISSION_SCOPE_NONE = "none"
