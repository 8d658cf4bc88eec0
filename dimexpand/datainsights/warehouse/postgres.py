from sqlalchemy.engine import create_engine

from dimexpand.datainsights.warehouse.warehouse_interface import Warehouse
from dimexpand.datainsights.warehouse.warehouse_interface import WarehouseType
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand.warehouse")


class PostgresClient(Warehouse):
    def __init__(self, creds: dict, connection_config: dict = None):
        """
        Establish connection to the analytics postgres database using sqlalchemy engine
        Creds come from settings.ANALYTICS_DB
        """
        connection_args = {
            "host": creds["host"],
            "port": creds["port"],
            "dbname": creds["database"],
            "user": creds["username"].strip(),
            "password": creds["password"],
        }

        if "ssl_mode" in creds:
            creds["sslmode"] = creds["ssl_mode"]

        if "sslrootcert" in creds:
            connection_args["sslrootcert"] = creds["sslrootcert"]

        if "sslmode" in creds and isinstance(creds["sslmode"], str):
            connection_args["sslmode"] = creds["sslmode"]

        if "sslmode" in creds and isinstance(creds["sslmode"], bool):
            connection_args["sslmode"] = "require" if creds["sslmode"] else "disable"

        pool_args = connection_config or {"pool_size": 5, "pool_timeout": 30}

        self.engine = create_engine(
            "postgresql+psycopg2://", connect_args=connection_args, **pool_args
        )

    def execute(self, sql_statement) -> list[dict]:
        """
        Execute the statement and return the rows as dicts
        """
        with self.engine.connect() as connection:
            result = connection.execute(sql_statement)
            rows = result.fetchall()
            return [dict(row._mapping) for row in rows]

    def get_wtype(self):
        return WarehouseType.POSTGRES

    def dispose(self):
        """close every pooled connection"""
        logger.info("Disposing analytics store connection pool")
        self.engine.dispose()
