import os
import threading

from redis import Redis


class RedisClient:
    """
    Singleton Class to instantiate a Redis client.
    Used by the dimension value cache; the expansion engine itself never needs redis
    """

    lock = threading.Lock()
    _redis_instance = None

    @classmethod
    def get_instance(cls) -> Redis:
        """
        Returns the Redis instance, creating it from REDIS_HOST and REDIS_PORT
        (defaults localhost:6379) the first time it is asked for.
        The lock keeps concurrent first calls from building two clients
        """
        if cls._redis_instance is None:
            if cls.lock.acquire(timeout=10):
                try:
                    if cls._redis_instance is None:
                        host = os.getenv("REDIS_HOST", "localhost")
                        port = int(os.getenv("REDIS_PORT", "6379"))
                        cls._redis_instance = Redis(host=host, port=port)
                finally:
                    cls.lock.release()
        return cls._redis_instance

    @classmethod
    def reset_instance(cls) -> None:
        """
        Reset the instance to None
        """
        cls._redis_instance = None
