# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tradedesk.core.events import EventBus
from tradedesk.core.security import create_access_token
from tradedesk.db.models import (
    EstimateStatus,
    InventoryItem,
    JobEstimate,
    MaterialKit,
    MaterialLibrary,
    MaterialPricing,
    Supplier,
)
from tradedesk.db.models.base import Base
from tradedesk.db.session import get_db

# In-memory database shared by every session of a test
TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def event_bus():
    """Isolated event bus that records every published event."""
    bus = EventBus()
    bus.published = []
    original_publish = bus.publish

    def publish(event):
        bus.published.append(event)
        original_publish(event)

    bus.publish = publish
    return bus


@pytest.fixture()
def client(db_session):
    """TestClient bound to the test database."""
    from tradedesk.main import app

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    token = create_access_token("user-42")
    return {"Authorization": f"Bearer {token}"}


# --- Test Data Helpers ---


def make_item(session, name="Drywall Sheet", quantity=10.0, reorder_point=5.0, **extra):
    item = InventoryItem(
        item_name=name,
        normalized_name=name.strip().lower(),
        quantity=quantity,
        initial_quantity=quantity,
        reorder_point=reorder_point,
        unit=extra.pop("unit", "each"),
        **extra,
    )
    session.add(item)
    session.commit()
    return item


def make_estimate(session, items, title="Kitchen Remodel", status=EstimateStatus.APPROVED, **extra):
    estimate = JobEstimate(
        title=title,
        status=status,
        items=items,
        tax_rate=extra.pop("tax_rate", 0),
        total_amount=extra.pop("total_amount", sum(float(i.get("total") or 0) for i in items)),
        client_profile_id=extra.pop("client_profile_id", "client-1"),
        **extra,
    )
    session.add(estimate)
    session.commit()
    return estimate


def make_supplier(session, store_name="Lumber Depot", **extra):
    supplier = Supplier(store_name=store_name, **extra)
    session.add(supplier)
    session.commit()
    return supplier


def make_material(session, item_name="Joint Compound", **extra):
    material = MaterialLibrary(item_name=item_name, **extra)
    session.add(material)
    session.commit()
    return material


def make_pricing(session, material_id, supplier_id=None, min_price=0.0, max_price=0.0):
    pricing = MaterialPricing(
        material_id=material_id,
        supplier_id=supplier_id,
        min_price=min_price,
        max_price=max_price,
    )
    session.add(pricing)
    session.commit()
    return pricing


def make_kit(session, items, kit_name="Bathroom Patch Kit"):
    kit = MaterialKit(kit_name=kit_name, items=items)
    session.add(kit)
    session.commit()
    return kit
