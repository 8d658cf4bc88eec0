from abc import ABC, abstractmethod
from enum import Enum


class WarehouseType(str, Enum):
    """
    analytics store types available
    """

    POSTGRES = "postgres"


class Warehouse(ABC):
    @abstractmethod
    def execute(self, sql_statement) -> list[dict]:
        pass

    @abstractmethod
    def get_wtype(self):
        pass

    @abstractmethod
    def dispose(self):
        pass
