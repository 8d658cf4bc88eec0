"""Redis cache of discovered dimension values"""

import asyncio
import hashlib
import json
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError

from dimexpand.schemas.access_schema import AccessScope
from dimexpand.schemas.dimension_schema import DimensionValuesResponse
from dimexpand.utils.constants import DIMENSION_VALUE_CACHE_TTL
from dimexpand.utils.custom_logger import CustomLogger
from dimexpand.utils.redis_client import RedisClient

logger = CustomLogger("dimexpand.cache")

CACHE_KEY_PREFIX = "dim"


class DimensionValueCache:
    """
    Discovered values keyed by data source, column and a hash of everything
    that changes the answer: filters, limit and the caller's access scope.
    Redis failures are logged and behave like a miss
    """

    def __init__(self, redis=None, ttl: int = DIMENSION_VALUE_CACHE_TTL):
        self._redis = redis
        self.ttl = ttl

    @property
    def redis(self):
        if self._redis is None:
            self._redis = RedisClient.get_instance()
        return self._redis

    @staticmethod
    def build_key(
        data_source_id: int,
        column_name: str,
        filters: List[Dict[str, Any]],
        access_scope: AccessScope,
        limit: int,
    ) -> str:
        fingerprint = json.dumps(
            {
                "filters": filters,
                "limit": limit,
                "scope": access_scope.cache_fingerprint(),
            },
            sort_keys=True,
            default=str,
        )
        digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:16]
        return f"{CACHE_KEY_PREFIX}:{data_source_id}:{column_name}:{digest}"

    def get(self, key: str) -> Optional[DimensionValuesResponse]:
        try:
            cached = self.redis.get(key)
        except RedisError as err:
            logger.warning(f"dimension value cache read failed for {key}: {err}")
            return None

        if cached is None:
            return None

        try:
            return DimensionValuesResponse(**json.loads(cached))
        except ValueError as err:
            logger.warning(f"discarding unreadable dimension value cache entry {key}: {err}")
            return None

    def set(self, key: str, response: DimensionValuesResponse) -> None:
        try:
            self.redis.set(key, json.dumps(response.dict()), ex=self.ttl)
        except RedisError as err:
            logger.warning(f"dimension value cache write failed for {key}: {err}")

    def invalidate(self, data_source_id: int, column_name: str = None) -> int:
        """drop cached values of one column, or of every column of the data source"""
        pattern = f"{CACHE_KEY_PREFIX}:{data_source_id}:{column_name or '*'}:*"
        deleted = 0
        try:
            for key in self.redis.scan_iter(match=pattern):
                deleted += self.redis.delete(key)
        except RedisError as err:
            logger.error(f"dimension value cache invalidation failed for {pattern}: {err}")
        logger.info(f"invalidated {deleted} dimension value cache entries matching {pattern}")
        return deleted

    async def warm(
        self,
        discovery_service,
        data_source_id: int,
        column_names: List[str],
        filters: List[Dict[str, Any]],
        access_scope: AccessScope,
        limit: int = None,
    ) -> Dict[str, int]:
        """
        Discover the columns concurrently so their values land in the cache.
        A failing column is logged and left out; the others are still warmed
        """
        results = await asyncio.gather(
            *(
                discovery_service.get_dimension_values(
                    data_source_id, column_name, filters, access_scope, limit
                )
                for column_name in column_names
            ),
            return_exceptions=True,
        )

        warmed = {}
        for column_name, result in zip(column_names, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"failed to warm dimension values for {data_source_id}:{column_name}: {result}"
                )
                continue
            warmed[column_name] = len(result.values)

        logger.info(f"warmed dimension values for data source {data_source_id}: {warmed}")
        return warmed
