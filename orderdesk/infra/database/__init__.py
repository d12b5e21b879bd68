"""
orderdesk.infra.database – async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, session_scope, init_db, close_engine
  Base, Order, Customer, Setting (models)
  BaseRepository, OrderRepository, CustomerRepository, SettingRepository
"""
from orderdesk.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
    session_scope,
)
from orderdesk.infra.database.models import Base, Customer, Order, Setting
from orderdesk.infra.database.repositories import (
    BaseRepository,
    CustomerRepository,
    OrderRepository,
    SettingRepository,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "session_scope",
    "init_db",
    "close_engine",
    "ensure_database_exists",
    "Base",
    "Order",
    "Customer",
    "Setting",
    "BaseRepository",
    "OrderRepository",
    "CustomerRepository",
    "SettingRepository",
]
