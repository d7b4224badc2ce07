"""Shared test fixtures."""

import itertools
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import pytest_asyncio

from phonebook.integrations.data_service import TableDataService
from phonebook.phones.controller import PhoneFormController

DATA_SERVICE_URL = "http://data.test"
REST_URL = f"{DATA_SERVICE_URL}/rest/v1"
AUTH_URL = f"{DATA_SERVICE_URL}/auth/v1"
API_KEY = "anon-test-key"
TABLE = "phone_numbers"


class FakeDataService:
    """In-memory stand-in for the remote table data service.

    Applies the policies the real service owns: rows are visible only to
    their owner, phones are unique per owner, and an owner holds at most
    `cap` rows.
    """

    def __init__(self, cap: int = 10) -> None:
        self.cap = cap
        self.rows: list[dict] = []
        self.tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.rejected_tokens: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.outage = False
        self.signup_fails = False
        self._ids = itertools.count(1)
        self._users = itertools.count(1)
        self._token_serial = itertools.count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=UTC)

    # --- Seeding helpers ---

    def issue_token(self, user_id: str | None = None) -> tuple[str, str]:
        user_id = user_id or f"user-{next(self._users)}"
        token = f"token-{user_id}-{next(self._token_serial)}"
        self.tokens[token] = user_id
        self.refresh_tokens[f"refresh-{user_id}"] = user_id
        return token, user_id

    def _token_response(self, user_id: str | None = None) -> httpx.Response:
        token, user_id = self.issue_token(user_id)
        return httpx.Response(
            200,
            json={
                "access_token": token,
                "refresh_token": f"refresh-{user_id}",
                "expires_in": 3600,
                "user": {"id": user_id},
            },
        )

    def add_row(self, user_id: str, phone: str) -> dict:
        self._clock += timedelta(seconds=1)
        row = {
            "id": str(next(self._ids)),
            "user_id": user_id,
            "phone": phone,
            "created_at": self._clock.isoformat(),
        }
        self.rows.append(row)
        return row

    def calls(self, method: str, path_suffix: str = f"/{TABLE}") -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(path_suffix)]

    # --- Transport handler ---

    def _user(self, request: httpx.Request) -> str | None:
        auth = request.headers.get("Authorization", "")
        return self.tokens.get(auth.removeprefix("Bearer "))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.outage:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path == "/auth/v1/signup" and request.method == "POST":
            if self.signup_fails:
                return httpx.Response(
                    422,
                    json={"code": "anonymous_provider_disabled", "msg": "Anonymous sign-ins are disabled"},
                )
            return self._token_response()
        if path == "/auth/v1/token" and request.method == "POST":
            user_id = self.refresh_tokens.get(json.loads(request.content).get("refresh_token", ""))
            if request.url.params.get("grant_type") != "refresh_token" or user_id is None:
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid Refresh Token: Refresh Token Not Found"},
                )
            return self._token_response(user_id)
        if path == "/rest/v1/":
            return httpx.Response(200, json={})
        if path != f"/rest/v1/{TABLE}":
            return httpx.Response(404, json={"message": "not found"})

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in self.rejected_tokens:
            return httpx.Response(401, json={"code": "PGRST301", "message": "JWT expired"})

        user = self._user(request)
        if request.method == "GET":
            visible = [r for r in self.rows if r["user_id"] == user]
            return httpx.Response(200, json=sorted(visible, key=lambda r: r["created_at"], reverse=True))
        if request.method == "POST":
            return self._insert(user, json.loads(request.content))

        record_id = request.url.params.get("id", "").removeprefix("eq.")
        row = next((r for r in self.rows if r["id"] == record_id and r["user_id"] == user), None)
        if request.method == "PATCH":
            return self._update(user, row, json.loads(request.content))
        if request.method == "DELETE":
            if row is None:
                return httpx.Response(200, json=[])
            self.rows.remove(row)
            return httpx.Response(200, json=[row])
        return httpx.Response(405, json={"message": "method not allowed"})

    def _duplicate(self) -> httpx.Response:
        return httpx.Response(
            409,
            json={
                "code": "23505",
                "message": 'duplicate key value violates unique constraint "phone_numbers_user_id_phone_key"',
            },
        )

    def _insert(self, user: str | None, records: list[dict]) -> httpx.Response:
        if user is None:
            return httpx.Response(
                401,
                json={"code": "42501", "message": 'new row violates row-level security policy for table "phone_numbers"'},
            )
        for record in records:
            if any(r["user_id"] == user and r["phone"] == record["phone"] for r in self.rows):
                return self._duplicate()
            if sum(1 for r in self.rows if r["user_id"] == user) >= self.cap:
                return httpx.Response(
                    400,
                    json={"code": "P0001", "message": f"Phone limit reached: at most {self.cap} numbers per user"},
                )
            self.add_row(user, record["phone"])
        return httpx.Response(201)

    def _update(self, user: str | None, row: dict | None, patch: dict) -> httpx.Response:
        if row is None:
            return httpx.Response(200, json=[])
        if any(r is not row and r["user_id"] == user and r["phone"] == patch.get("phone") for r in self.rows):
            return self._duplicate()
        row.update(patch)
        return httpx.Response(200, json=[row])


@pytest.fixture
def fake_backend():
    return FakeDataService()


@pytest_asyncio.fixture
async def http_client(fake_backend):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_backend.handler)) as client:
        yield client


@pytest.fixture
def make_service(http_client):
    """Factory for data service clients pointed at the fake backend."""

    def _make(session=None, http=None):
        return TableDataService(http or http_client, session, rest_url=REST_URL, auth_url=AUTH_URL, api_key=API_KEY)

    return _make


@pytest.fixture
def service(make_service):
    """Data service client with no identity yet."""
    return make_service()


@pytest.fixture
def controller(service):
    return PhoneFormController(service, table=TABLE, anonymous_identity=True)
