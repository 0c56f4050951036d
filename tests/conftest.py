from collections.abc import Callable, Iterator
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from order_service import api as order_api
from order_service import models as order_models
from order_service.database import get_db as get_order_db
from order_service.main import app as order_app
from order_service.product_client import ProductServiceClient, build_breaker
from product_service import models as product_models
from product_service.database import get_db as get_product_db
from product_service.main import app as product_app

JWT_SECRET_KEY = "testsecret"


def make_token(username: str, roles: list[str], **claims) -> str:
    payload = {
        "sub": f"id-{username}",
        "preferred_username": username,
        "realm_access": {"roles": roles},
        **claims,
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm="HS256")


def auth_headers(username: str, roles: list[str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(username, roles)}"}


def _session_factory(metadata) -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _override_get_db(factory: sessionmaker) -> Callable[[], Iterator[Session]]:
    def _get_db() -> Iterator[Session]:
        db = factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def product_sessions() -> sessionmaker:
    return _session_factory(product_models.Base.metadata)


@pytest.fixture
def order_sessions() -> sessionmaker:
    return _session_factory(order_models.Base.metadata)


@pytest.fixture
def order_db(order_sessions: sessionmaker) -> Iterator[Session]:
    db = order_sessions()
    yield db
    db.close()


@pytest.fixture
def seed_product(product_sessions: sessionmaker) -> Callable[..., int]:
    def _seed(name: str = "Keyboard", price: str = "10.00", quantity: int = 5) -> int:
        with product_sessions() as db:
            product = product_models.Product(
                name=name,
                description=f"{name} description",
                price=Decimal(price),
                quantity=quantity,
            )
            db.add(product)
            db.commit()
            return product.id

    return _seed


@pytest.fixture
def stock_of(product_sessions: sessionmaker) -> Callable[[int], int]:
    def _stock(product_id: int) -> int:
        with product_sessions() as db:
            return db.get(product_models.Product, product_id).quantity

    return _stock


@pytest.fixture
def product_client_http(product_sessions: sessionmaker) -> Iterator[TestClient]:
    product_app.dependency_overrides[get_product_db] = _override_get_db(product_sessions)
    yield TestClient(product_app, base_url="http://product-service")
    product_app.dependency_overrides.clear()


@pytest.fixture
def product_client(product_client_http: TestClient) -> ProductServiceClient:
    """A real stock client whose HTTP calls land in the in-process product service."""
    return ProductServiceClient(
        product_client_http,
        breaker=build_breaker(fail_max=5, reset_timeout=60),
    )


@pytest.fixture
def mock_product_client() -> MagicMock:
    client = MagicMock(spec=ProductServiceClient)
    client.check_stock.return_value = True
    client.reduce_stock.return_value = None
    return client


def _order_client(order_sessions: sessionmaker, stock_client) -> TestClient:
    order_app.dependency_overrides[get_order_db] = _override_get_db(order_sessions)
    order_app.dependency_overrides[order_api.get_product_client] = lambda: stock_client
    return TestClient(order_app)


@pytest.fixture
def order_client(order_sessions: sessionmaker, product_client: ProductServiceClient) -> Iterator[TestClient]:
    """Order service wired to the in-process product service."""
    yield _order_client(order_sessions, product_client)
    order_app.dependency_overrides.clear()


@pytest.fixture
def mocked_order_client(order_sessions: sessionmaker, mock_product_client: MagicMock) -> Iterator[TestClient]:
    """Order service wired to a mocked stock client."""
    yield _order_client(order_sessions, mock_product_client)
    order_app.dependency_overrides.clear()
