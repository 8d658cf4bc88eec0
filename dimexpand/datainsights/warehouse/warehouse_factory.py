import threading

from django.conf import settings

from dimexpand.datainsights.warehouse.warehouse_interface import Warehouse
from dimexpand.datainsights.warehouse.postgres import PostgresClient
from dimexpand.datainsights.warehouse.warehouse_interface import WarehouseType


class WarehouseFactory:
    @classmethod
    def connect(cls, creds: dict, wtype: str, connection_config: dict = None) -> Warehouse:
        if wtype == WarehouseType.POSTGRES:
            return PostgresClient(creds, connection_config=connection_config)
        else:
            raise ValueError(f"Warehouse type {wtype} not supported")


class ConnectionPooledWarehouseFactory:
    """
    One pooled client to the analytics store per process.
    Every discovery query and chart execution shares its pool
    """

    # sized for MAX_CONCURRENT_DIMENSION_QUERIES in flight plus discovery
    CONNECTION_CONFIG = {
        "pool_size": 5,
        "max_overflow": 2,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }

    lock = threading.Lock()
    _client: Warehouse = None

    @classmethod
    def get_warehouse_client(cls) -> Warehouse:
        """Get the pooled analytics store client, connecting on first use"""
        if cls._client is None:
            with cls.lock:
                if cls._client is None:
                    creds = dict(settings.ANALYTICS_DB)
                    if not creds.get("host"):
                        raise ValueError("Analytics store not configured")
                    cls._client = WarehouseFactory.connect(
                        creds, WarehouseType.POSTGRES, cls.CONNECTION_CONFIG
                    )
        return cls._client

    @classmethod
    def reset(cls) -> None:
        """dispose the pooled client; the next call reconnects"""
        with cls.lock:
            if cls._client is not None:
                cls._client.dispose()
            cls._client = None
