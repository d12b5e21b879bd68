"""Repositories for the orderdesk database."""
from orderdesk.infra.database.repositories.base import BaseRepository
from orderdesk.infra.database.repositories.customer import CustomerRepository
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.infra.database.repositories.setting import SettingRepository

__all__ = [
    "BaseRepository",
    "OrderRepository",
    "CustomerRepository",
    "SettingRepository",
]
