import os

# never reach for the default PostgreSQL URL from the test suite
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session, sessionmaker

from fulfillment.app.db.base import Base
from fulfillment.app.db.models.core_types import LocationType, POStatus
from fulfillment.app.db.models.models_v1 import (
    Location,
    Organization,
    Product,
    PurchaseOrder,
    PurchaseOrderLine,
    User,
    Vendor,
)
from fulfillment.app.db.session import build_engine, build_session_factory
from fulfillment.services.identity import Identity
from fulfillment.services.totals import apply_order_totals


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Fresh SQLite database file per test.

    A file (not :memory:) so that several sessions see each other's commits,
    which the concurrency tests rely on.
    """
    eng = build_engine(f"sqlite+pysqlite:///{tmp_path / 'receiving.db'}")
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@dataclass
class World:
    actor: Identity
    other_actor: Identity
    vendor_id: int
    product_a: int
    product_b: int
    loc_main: int
    loc_overflow: int
    loc_inactive: int
    other_loc: int


@pytest.fixture
def world(db_session) -> World:
    # ---------- ARRANGE : master data for two tenants ----------
    org = Organization(name="Acme Foods", active=True)
    other_org = Organization(name="Other Tenant", active=True)
    db_session.add_all([org, other_org])
    db_session.flush()

    user = User(organization_id=org.id, name="receiver", active=True)
    other_user = User(organization_id=other_org.id, name="intruder", active=True)
    vendor = Vendor(organization_id=org.id, name="Flour Mill Ltd")
    product_a = Product(organization_id=org.id, sku="FLOUR-25", name="Flour 25kg", stock_unit="bag")
    product_b = Product(organization_id=org.id, sku="SUGAR-10", name="Sugar 10kg", stock_unit="bag")
    loc_main = Location(organization_id=org.id, name="MAIN", type=LocationType.warehouse, is_active=True)
    loc_overflow = Location(organization_id=org.id, name="OVERFLOW", type=LocationType.zone, is_active=True)
    loc_inactive = Location(organization_id=org.id, name="OLD-DOCK", type=LocationType.dock, is_active=False)
    other_loc = Location(organization_id=other_org.id, name="MAIN", type=LocationType.warehouse, is_active=True)
    db_session.add_all(
        [user, other_user, vendor, product_a, product_b, loc_main, loc_overflow, loc_inactive, other_loc]
    )
    db_session.commit()

    return World(
        actor=Identity(user_id=user.id, tenant_id=org.id),
        other_actor=Identity(user_id=other_user.id, tenant_id=other_org.id),
        vendor_id=vendor.id,
        product_a=product_a.id,
        product_b=product_b.id,
        loc_main=loc_main.id,
        loc_overflow=loc_overflow.id,
        loc_inactive=loc_inactive.id,
        other_loc=other_loc.id,
    )


_order_seq = iter(range(1, 10_000))


@pytest.fixture
def make_order(db_session, world):
    """
    make_order([(product_id, qty, unit_price), ...], status=...) -> PurchaseOrder
    """

    def _make(lines, status=POStatus.approved, shipping="0", discount="0") -> PurchaseOrder:
        po = PurchaseOrder(
            organization_id=world.actor.tenant_id,
            order_number=f"PO-{next(_order_seq):05d}",
            vendor_id=world.vendor_id,
            order_date=date(2026, 10, 1),
            status=status,
            currency="USD",
            shipping_amount=Decimal(shipping),
            discount_amount=Decimal(discount),
            created_by=world.actor.user_id,
            updated_by=world.actor.user_id,
        )
        for product_id, qty, unit_price in lines:
            po.lines.append(
                PurchaseOrderLine(
                    product_id=product_id,
                    quantity=Decimal(str(qty)),
                    unit_price=None if unit_price is None else Decimal(str(unit_price)),
                    tax_rate=Decimal("0"),
                    discount_amount=Decimal("0"),
                )
            )
        apply_order_totals(po)
        db_session.add(po)
        db_session.commit()
        return po

    return _make

