# tests/conftest.py
import json
import os

os.environ.setdefault("HTTP_RETRY_ATTEMPTS", "2")
os.environ.setdefault("LOCAL_STORE_URL", "sqlite://")
os.environ.setdefault("ALLOW_OFFLINE_COUPONS", "true")

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cartsync.data.database import init_db
from cartsync.domain.errors import NetworkFailure
from cartsync.domain.schemas import CartLineItem, InventoryCheck, ProductSnapshot
from cartsync.repos.local_cart_repo import LocalCartStore
from cartsync.repos.storage_repo import SqlStorage
from cartsync.services.auth_session import AuthSession
from cartsync.services.cart_backends import LocalCartBackend, ServerCartBackend
from cartsync.services.cart_service import CartService
from cartsync.services.coupon_service import CouponResolver
from cartsync.services.product_client import ProductClient


def make_response(status_code=200, payload=None):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.content = b"" if payload is None else json.dumps(payload).encode()
    resp.json.return_value = payload
    return resp


def make_item(item_id="i1", product_id="p1", quantity=1, size=None, color=None, price="10", discounted=None):
    return CartLineItem(
        id=item_id,
        product_id=product_id,
        quantity=quantity,
        size=size,
        color=color,
        product=ProductSnapshot(
            id=product_id,
            name=product_id,
            price=Decimal(price),
            discounted_price=Decimal(discounted) if discounted else None,
        ),
    )


@pytest.fixture
def storage():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    db = sessionmaker(bind=engine)()
    yield SqlStorage(db)
    db.close()


@pytest.fixture
def http_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def auth():
    return AuthSession()


@pytest.fixture
def product_client():
    """Kazdy produkt kosztuje 10, magazyn bez limitu, dopoki test nie ustawi inaczej."""
    client = MagicMock(spec=ProductClient)
    client.fetch_snapshot.side_effect = lambda pid: ProductSnapshot(id=pid, name=pid, price=Decimal("10"))
    client.check_inventory.return_value = InventoryCheck(available=True)
    return client


@pytest.fixture
def local_store(storage):
    return LocalCartStore(storage)


@pytest.fixture
def server_backend():
    return MagicMock(spec=ServerCartBackend)


@pytest.fixture
def coupon_resolver():
    api = MagicMock()
    api.get.side_effect = NetworkFailure("Store service unavailable")
    api.post.side_effect = NetworkFailure("Store service unavailable")
    return CouponResolver(api, allow_offline=True)


@pytest.fixture
def cart_service(auth, local_store, product_client, server_backend, coupon_resolver, storage):
    service = CartService(
        auth=auth,
        local_backend=LocalCartBackend(local_store, product_client),
        server_backend=server_backend,
        product_client=product_client,
        coupon_resolver=coupon_resolver,
        activity_store=storage,
    )
    return service
