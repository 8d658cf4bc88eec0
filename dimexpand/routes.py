from ninja import NinjaAPI
from ninja.errors import ValidationError
from ninja.responses import Response
from pydantic import ValidationError as PydanticValidationError

from dimexpand.api.dimension_expansion_api import dimension_expansion_router
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand")

src_api = NinjaAPI(
    urls_namespace="api",
    title="Dimension expansion apis",
    description="Expand analytics charts by dimension values",
    docs_url="/api/docs",
)


@src_api.exception_handler(ValidationError)
def ninja_validation_error_handler(request, exc):  # pylint: disable=unused-argument
    """
    Handle any ninja validation errors raised in the apis
    These are raised during request payload validation
    exc.errors is correct
    """
    return Response({"detail": exc.errors}, status=422)


@src_api.exception_handler(PydanticValidationError)
def pydantic_validation_error_handler(
    request, exc: PydanticValidationError
):  # pylint: disable=unused-argument
    """
    Handle any pydantic errors raised in the apis
    These are raised during response payload validation
    exc.errors() is correct
    """
    return Response({"detail": exc.errors()}, status=500)


@src_api.exception_handler(Exception)
def ninja_default_error_handler(request, exc: Exception):  # pylint: disable=unused-argument
    """Handle any other exception raised in the apis"""
    logger.error(f"unhandled error on {request.path}: {exc}")
    return Response({"detail": "something went wrong"}, status=500)


# tag routes to specify sections in docs
dimension_expansion_router.tags = ["DimensionExpansion"]

# mount all the module routes
src_api.add_router("/api/analytics/", dimension_expansion_router)
