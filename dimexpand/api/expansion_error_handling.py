"""Error handling utilities for dimension expansion APIs"""
from functools import wraps
from ninja.errors import HttpError
from django.db import DatabaseError
from sqlalchemy.exc import SQLAlchemyError

from dimexpand.core.dimensions.exceptions import (
    DataSourceNotFoundError,
    DimensionExpansionError,
    DimensionNotFoundError,
)
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.api")


def handle_expansion_errors(func):
    """Decorator mapping dimension expansion errors onto http errors"""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except HttpError:
            raise
        except (DataSourceNotFoundError, DimensionNotFoundError) as e:
            logger.error(f"Not found in {func.__name__}: {e.message}")
            raise HttpError(404, e.message)
        except DimensionExpansionError as e:
            logger.error(f"{e.error_code} in {func.__name__}: {e.message}")
            raise HttpError(400, e.message)
        except DatabaseError as e:
            logger.exception(f"Database error in {func.__name__}: {str(e)}")
            raise HttpError(500, "Database error occurred")
        except SQLAlchemyError as e:
            logger.exception(f"SQLAlchemy error in {func.__name__}: {str(e)}")
            raise HttpError(500, "Query execution failed")
        except ValueError as e:
            logger.error(f"Value error in {func.__name__}: {str(e)}")
            raise HttpError(400, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in {func.__name__}: {str(e)}")
            raise HttpError(500, f"An unexpected error occurred in {func.__name__}")

    return wrapper
