"""
Pytest fixtures for the GemTrade backend.

Runs against an in-memory SQLite database (one shared connection) so the
stores' per-write commits behave as they do on Postgres, without a server.
Tables are created and dropped around every test.
"""
import os

# Must be set before gemtrade.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("AUTO_CREATE_TABLES", "False")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from gemtrade.database import Base, SessionLocal, engine
from gemtrade.models import Client, InventoryItem
from gemtrade.schemas.sale import SaleCreate


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_stone(db):
    """Insert an inventory item; quantity drives is_available."""
    counter = {"n": 0}

    def _make(gem_code=None, stone_type="Ruby", carat="2.00", price_per_carat="15000",
              quantity=5, cost_per_carat=None, **extra):
        counter["n"] += 1
        item = InventoryItem(
            gem_code=gem_code or f"GEM-{counter['n']:03d}",
            stone_type=stone_type,
            carat=Decimal(carat),
            price_per_carat=Decimal(price_per_carat),
            cost_per_carat=Decimal(cost_per_carat) if cost_per_carat is not None else None,
            quantity=quantity,
            is_available=quantity > 0,
            **extra,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make


@pytest.fixture
def make_client(db):
    def _make(name="Pandit Sharma", **extra):
        client = Client(name=name, **extra)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    return _make


@pytest.fixture
def sale_draft():
    """Build a SaleCreate from (stone_ref, quantity) pairs or full line dicts."""

    def _draft(*lines, sale_date=date(2026, 3, 15), **header):
        items = []
        for line in lines:
            if isinstance(line, dict):
                items.append(line)
            else:
                ref, quantity = line
                items.append({"stone_ref": ref, "quantity": quantity})
        return SaleCreate(date=sale_date, items=items, **header)

    return _draft


@pytest.fixture
def reload(db):
    """Fresh copy of a row; the stores write through bulk statements."""

    def _reload(obj):
        db.expire_all()
        return db.get(type(obj), obj.id)

    return _reload


@pytest.fixture
def api(db):
    from gemtrade.main import app

    with TestClient(app) as client:
        yield client
