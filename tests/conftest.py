"""Shared fixtures: an in-memory Supabase stand-in and a mocked Stripe gateway."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from enpensent_api.config import settings
from enpensent_api.core.rate_limit import limiter
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.main import app
from enpensent_api.modules.auth.service import clear_auth_cache
from enpensent_api.modules.marketplace.routes import get_marketplace_stripe
from enpensent_api.payments.stripe_client import StripeGateway, get_stripe_gateway

BUYER_ID = "user-buyer"
SELLER_ID = "user-seller"
OTHER_ID = "user-other"

TOKENS = {
    "buyer-token": {"id": BUYER_ID, "email": "buyer@example.com"},
    "seller-token": {"id": SELLER_ID, "email": "seller@example.com"},
    "other-token": {"id": OTHER_ID, "email": "other@example.com"},
}

MUTATING_OPS = ("insert", "update", "upsert", "delete")


def auth_headers(token: str = "buyer-token") -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# -- Fake Supabase ----------------------------------------------------------

class FakeResult:
    def __init__(self, data: Any):
        self.data = data


class FakeQuery:
    """Subset of the postgrest query builder used by the services."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: Optional[tuple] = None
        self.limit_n: Optional[int] = None
        self.offset_n = 0
        self.single = False

    def select(self, *columns, **kwargs):
        self.op = "select"
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def upsert(self, data, on_conflict: Optional[str] = None, **kwargs):
        self.op, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def is_(self, column, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def offset(self, n):
        self.offset_n = n
        return self

    def maybe_single(self):
        self.single = True
        return self

    def _matching(self, rows):
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self):
        self.db.calls.append((self.table, self.op, copy.deepcopy(self.payload)))
        failure = self.db.failures.get((self.table, self.op))
        if failure:
            raise Exception(failure)

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "select":
            found = [copy.deepcopy(r) for r in self._matching(rows)]
            if self.order_by:
                column, desc = self.order_by
                found.sort(key=lambda r: r.get(column) or "", reverse=desc)
            found = found[self.offset_n:]
            if self.limit_n is not None:
                found = found[:self.limit_n]
            if self.single:
                # postgrest returns no response object for maybe_single() without a row
                return FakeResult(found[0]) if found else None
            return FakeResult(found)

        if self.op == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self.db.add(self.table, dict(r)) for r in new_rows]
            return FakeResult(copy.deepcopy(created))

        if self.op == "update":
            updated = []
            for row in self._matching(rows):
                row.update(self.payload)
                updated.append(copy.deepcopy(row))
            return FakeResult(updated)

        if self.op == "upsert":
            key = self.on_conflict or "id"
            for row in rows:
                if row.get(key) == self.payload.get(key):
                    row.update(self.payload)
                    return FakeResult([copy.deepcopy(row)])
            return FakeResult([copy.deepcopy(self.db.add(self.table, dict(self.payload)))])

        removed = self._matching(rows)
        self.db.tables[self.table] = [r for r in rows if r not in removed]
        return FakeResult(copy.deepcopy(removed))


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db, self.name, self.params = db, name, params

    def execute(self):
        self.db.calls.append(("rpc", self.name, dict(self.params)))
        handler = self.db.rpc_handlers[self.name]
        return FakeResult(handler(self.params) if callable(handler) else handler)


class FakeAdmin:
    def __init__(self, db: "FakeSupabase"):
        self.db = db

    def list_users(self, page: int = 1, per_page: int = 50):
        users = [SimpleNamespace(id=u["id"], email=u["email"]) for u in TOKENS.values()]
        start = (page - 1) * per_page
        return users[start:start + per_page]


class FakeAuth:
    def __init__(self, db: "FakeSupabase"):
        self.db = db
        self.admin = FakeAdmin(db)
        self.get_user_calls = 0

    def get_user(self, jwt: str):
        self.get_user_calls += 1
        user = TOKENS.get(jwt)
        if user is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=SimpleNamespace(
            id=user["id"],
            email=user["email"],
            user_metadata={},
            app_metadata={},
            created_at="2026-01-01T00:00:00+00:00",
        ))


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, str] = {}
        self.premium_users = {BUYER_ID, SELLER_ID}
        self.remaining_transfers: Dict[str, int] = {}
        self.released: Dict[str, int] = {}
        self.rpc_handlers: Dict[str, Any] = {
            "is_premium_user": lambda p: p["p_user_id"] in self.premium_users,
            "get_remaining_transfers": lambda p: self.remaining_transfers.get(p["p_visualization_id"], 3),
            "can_transfer_visualization": lambda p: self.remaining_transfers.get(p["p_visualization_id"], 3) > 0,
            "release_user_visions": lambda p: self.released.get(p["p_user_id"], 0),
        }
        self.auth = FakeAuth(self)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def add(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self.tables.setdefault(table, []).append(row)
        return row

    def row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        return next((r for r in self.tables.get(table, []) if r["id"] == row_id), None)

    @property
    def mutations(self) -> List[tuple]:
        return [c for c in self.calls if c[1] in MUTATING_OPS]


# -- Fixtures -----------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_state():
    clear_auth_cache()
    limiter.enabled = False
    yield
    clear_auth_cache()
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def stripe_gateway() -> MagicMock:
    gateway = MagicMock(spec=StripeGateway)
    gateway.find_customer_id.return_value = None
    gateway.create_checkout_session.return_value = {
        "id": "cs_test_123",
        "url": "https://checkout.stripe.com/c/pay/cs_test_123",
    }
    gateway.list_checkout_sessions.return_value = []
    return gateway


@pytest.fixture
def client(fake_db, stripe_gateway) -> TestClient:
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_marketplace_stripe] = lambda: stripe_gateway
    return TestClient(app)


@pytest.fixture
def vision(fake_db) -> Dict[str, Any]:
    return fake_db.add("saved_visualizations", {
        "id": "vis-1",
        "title": "The Immortal Game",
        "image_path": "visions/vis-1.png",
        "user_id": SELLER_ID,
    })


@pytest.fixture
def make_listing(fake_db, vision):
    def _make(price_cents: int = 2500, status: str = "active", **extra) -> Dict[str, Any]:
        row = {
            "visualization_id": vision["id"],
            "seller_id": SELLER_ID,
            "buyer_id": None,
            "price_cents": price_cents,
            "status": status,
            "sold_at": None,
        }
        row.update(extra)
        return fake_db.add("visualization_listings", row)
    return _make


@pytest.fixture
def restore_settings():
    """Snapshot settings fields a test mutates."""
    saved = settings.model_dump()
    yield settings
    for key, value in saved.items():
        setattr(settings, key, value)
