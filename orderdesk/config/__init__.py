"""
orderdesk config: load from env.

load_database_config(), load_orderdesk_config().
"""
from orderdesk.config.database import DatabaseConfig, load_database_config
from orderdesk.config.orderdesk import OrderDeskConfig, load_orderdesk_config

__all__ = [
    "DatabaseConfig",
    "load_database_config",
    "OrderDeskConfig",
    "load_orderdesk_config",
]
