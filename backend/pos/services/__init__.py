"""
Service wiring.

Services hold an explicit session handle; build_services() constructs one
set per application and create_app() keeps it on app.extensions["pos"].
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import current_app

from pos.time_utils import utcnow
from .auth_service import AuthService
from .identifier_service import new_id
from .inventory_service import InventoryStore
from .ledger_service import StockLedger
from .reporting_service import ReportingService
from .sales_service import SalesEngine


@dataclass
class PosServices:
    ledger: StockLedger
    inventory: InventoryStore
    sales: SalesEngine
    reports: ReportingService
    auth: AuthService


def build_services(
    session,
    *,
    clock: Callable[[], datetime] = utcnow,
    id_factory: Callable[[], str] = new_id,
    default_min_stock: int = 5,
    top_products_limit: int = 10,
    bcrypt_rounds: int = 12,
) -> PosServices:
    ledger = StockLedger(session, clock=clock, id_factory=id_factory)
    inventory = InventoryStore(
        session,
        ledger,
        clock=clock,
        id_factory=id_factory,
        default_min_stock=default_min_stock,
    )
    return PosServices(
        ledger=ledger,
        inventory=inventory,
        sales=SalesEngine(session, inventory, ledger, clock=clock, id_factory=id_factory),
        reports=ReportingService(session, top_products_limit=top_products_limit),
        auth=AuthService(session, clock=clock, id_factory=id_factory, bcrypt_rounds=bcrypt_rounds),
    )


def get_services() -> PosServices:
    """Services of the current Flask app."""
    return current_app.extensions["pos"]
