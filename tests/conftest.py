import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from order_dispatch.core.security import create_access_token
from order_dispatch.database import Base, get_db
from order_dispatch.main import app
from order_dispatch.models import MenuItem, Restaurant, User, UserRole, UserStatus
from order_dispatch.repository.delivery_store import DeliveryStore
from order_dispatch.repository.directory import Directory
from order_dispatch.repository.order_store import OrderStore
from order_dispatch.service.delivery_dispatcher import DeliveryDispatcher
from order_dispatch.service.location_tracker import LocationTracker
from order_dispatch.service.order_lifecycle import OrderLifecycle


def seed(session):
    customer = User(name="Casey Customer", email="casey@example.com", role=UserRole.CUSTOMER)
    owner = User(name="Olive Owner", email="olive@example.com", role=UserRole.OWNER)
    other_owner = User(name="Oscar Owner", email="oscar@example.com", role=UserRole.OWNER)
    courier_x = User(name="Xavi Courier", email="xavi@example.com", phone="555-0101", role=UserRole.DELIVERY)
    courier_y = User(name="Yara Courier", email="yara@example.com", role=UserRole.DELIVERY)
    inactive_courier = User(
        name="Ivan Courier", email="ivan@example.com",
        role=UserRole.DELIVERY, status=UserStatus.INACTIVE,
    )
    admin = User(name="Ada Admin", email="ada@example.com", role=UserRole.ADMIN)
    session.add_all([customer, owner, other_owner, courier_x, courier_y, inactive_courier, admin])
    session.flush()

    restaurant = Restaurant(
        name="Noodle Bar", location="1 Main St", contact_info="555-0199",
        latitude=1.0, longitude=1.05, owner_id=owner.id,
    )
    other_restaurant = Restaurant(name="Taco Stand", owner_id=other_owner.id)
    session.add_all([restaurant, other_restaurant])
    session.flush()

    ramen = MenuItem(name="Ramen", price=10.00, restaurant_id=restaurant.id)
    gyoza = MenuItem(name="Gyoza", price=7.50, restaurant_id=restaurant.id)
    taco = MenuItem(name="Taco", price=3.00, restaurant_id=other_restaurant.id)
    session.add_all([ramen, gyoza, taco])
    session.commit()

    return SimpleNamespace(
        customer=customer.id,
        owner=owner.id,
        other_owner=other_owner.id,
        courier_x=courier_x.id,
        courier_y=courier_y.id,
        inactive_courier=inactive_courier.id,
        admin=admin.id,
        restaurant=restaurant.id,
        other_restaurant=other_restaurant.id,
        ramen=ramen.id,
        gyoza=gyoza.id,
        taco=taco.id,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ids(db):
    return seed(db)


@pytest.fixture
def lifecycle(db):
    return OrderLifecycle(db, OrderStore(db), Directory(db))


@pytest.fixture
def dispatcher(db):
    return DeliveryDispatcher(db, OrderStore(db), DeliveryStore(db), Directory(db))


@pytest.fixture
def tracker(db):
    return LocationTracker(db, OrderStore(db), DeliveryStore(db))


@pytest.fixture
def user(db):
    def load(user_id):
        return Directory(db).get_user(user_id)
    return load


@pytest.fixture
def place_order(lifecycle, ids):
    def place(items=None, order_type="delivery", restaurant_id=None):
        if items is None:
            items = [
                {"item_id": ids.ramen, "quantity": 2},
                {"item_id": ids.gyoza, "quantity": 1, "preferences": "extra chili"},
            ]
        return lifecycle.create_order(
            customer_id=ids.customer,
            restaurant_id=restaurant_id or ids.restaurant,
            order_type=order_type,
            items=items,
        )
    return place


@pytest.fixture
def ready_order(place_order, lifecycle, user, ids):
    """A delivery order walked through to ready by its owner."""
    def build(order_type="delivery"):
        order = place_order(order_type=order_type)
        owner = user(ids.owner)
        for status in ("confirmed", "preparing", "ready"):
            lifecycle.update_status(order.id, status, actor=owner)
        return order.id
    return build


@pytest.fixture
def client(session_factory, ids):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def headers(user_id):
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}
    return headers


@pytest.fixture
def file_sessions(tmp_path):
    """Independent sessions on one on-disk database, like two request workers."""
    engine = create_engine(f"sqlite:///{tmp_path / 'dispatch.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    sessions = []

    def open_session():
        session = factory()
        sessions.append(session)
        return session

    yield open_session

    for session in sessions:
        session.close()
    engine.dispose()


def ready_order_in(session, ids):
    """Place an order in ``session`` and walk it to ready."""
    lifecycle = OrderLifecycle(session, OrderStore(session), Directory(session))
    owner = Directory(session).get_user(ids.owner)
    order = lifecycle.create_order(ids.customer, ids.restaurant, "delivery", [{"item_id": ids.ramen, "quantity": 1}])
    for status in ("confirmed", "preparing", "ready"):
        lifecycle.update_status(order.id, status, actor=owner)
    return order.id
