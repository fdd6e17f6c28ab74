"""
Backend client: envelopes, errors and token refresh
"""
import json

import pytest
import requests

from dailybook.api_client import BackendClient, error_message, unwrap
from dailybook.core.exceptions import NetworkFailure
from dailybook.schemas import FilterCriteria


def make_response(status, body=None, text=None):
    response = requests.Response()
    response.status_code = status
    response.reason = "Error" if status >= 400 else "OK"
    if body is not None:
        response._content = json.dumps(body).encode()
    else:
        response._content = (text or "").encode()
    return response


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def make_client(*responses, **kwargs):
    session = FakeSession(*responses)
    client = BackendClient(base_url="http://backend/api", session=session, **kwargs)
    return client, session


class TestEnvelope:

    def test_unwraps_data(self):
        assert unwrap({"success": True, "data": [1, 2]}) == [1, 2]

    def test_plain_body(self):
        assert unwrap([1, 2]) == [1, 2]
        assert unwrap({"id": 1, "data": "x", "name": "y"}) == {"id": 1, "data": "x", "name": "y"}

    def test_error_message_preference(self):
        assert error_message(make_response(400, {"message": "Bad amount"})) == "Bad amount"
        assert error_message(make_response(400, {"error": "Nope"})) == "Nope"
        assert error_message(make_response(422, {"detail": "Invalid"})) == "Invalid"
        assert error_message(make_response(500, text="Boom")) == "Boom"
        assert error_message(make_response(500)) == "Error"


class TestRequests:

    def test_get_accounts(self):
        client, session = make_client(
            make_response(200, {"success": True, "data": [{"id": 1}]}),
            access_token="abc",
        )

        assert client.list_accounts() == [{"id": 1}]
        method, url, kwargs = session.calls[0]
        assert (method, url) == ("GET", "http://backend/api/accounts")
        assert kwargs["headers"]["Authorization"] == "Bearer abc"

    def test_create_transaction_sends_idempotency_key(self):
        client, session = make_client(make_response(201, {"success": True, "data": {"id": 9}}))

        created = client.create_transaction({"type": "deposit"}, idempotency_key="k1")

        assert created == {"id": 9}
        _, url, kwargs = session.calls[0]
        assert url == "http://backend/api/transactions"
        assert kwargs["json"] == {"type": "deposit"}
        assert kwargs["headers"]["Idempotency-Key"] == "k1"

    def test_list_transactions_query(self):
        client, session = make_client(make_response(200, {"success": True, "data": []}))

        client.list_transactions(FilterCriteria(types="deposit", account_id="3"), page=1, limit=20)

        params = session.calls[0][2]["params"]
        assert params == {"type": "deposit", "account_id": "3", "page": "1", "limit": "20"}

    def test_paginated_list(self):
        client, _ = make_client(make_response(200, {"success": True, "data": {"transactions": [{"id": 1}]}}))
        assert client.list_transactions() == [{"id": 1}]

    def test_error_raises_network_failure(self):
        client, _ = make_client(make_response(400, {"message": "Insufficient balance"}))

        with pytest.raises(NetworkFailure) as exc:
            client.post("/transactions", {})
        assert exc.value.message == "Insufficient balance"
        assert exc.value.status_code == 400

    def test_connection_error(self):
        client, _ = make_client(requests.exceptions.ConnectionError("refused"))

        with pytest.raises(NetworkFailure) as exc:
            client.list_accounts()
        assert exc.value.message == "Backend connection error"

    def test_empty_body(self):
        client, _ = make_client(make_response(204))
        assert client.delete_transaction("5") is None

    def test_junction_paths(self):
        client, session = make_client(make_response(200, {"success": True}), make_response(200, []))

        client.remove_junction("purchaser-products", "purchaser", "4", "product", "9")
        client.list_junction("purchaser-products", "purchaser", "4")

        assert session.calls[0][:2] == ("DELETE", "http://backend/api/purchaser-products/purchaser/4/product/9")
        assert session.calls[1][:2] == ("GET", "http://backend/api/purchaser-products/purchaser/4")


class TestTokenRefresh:

    def test_refresh_and_repeat_once(self):
        stored = []
        client, session = make_client(
            make_response(401, {"message": "Token expired"}),
            make_response(200, {"success": True, "data": {"accessToken": "new", "refreshToken": "r2"}}),
            make_response(200, {"success": True, "data": []}),
            access_token="old",
            refresh_token="r1",
            on_tokens=lambda access, refresh: stored.append((access, refresh)),
        )

        assert client.list_accounts() == []
        assert [c[1] for c in session.calls] == [
            "http://backend/api/accounts",
            "http://backend/api/auth/refresh",
            "http://backend/api/accounts",
        ]
        assert session.calls[1][2]["json"] == {"refreshToken": "r1"}
        assert session.calls[2][2]["headers"]["Authorization"] == "Bearer new"
        assert stored == [("new", "r2")]

    def test_failed_refresh_surfaces_401(self):
        client, _ = make_client(
            make_response(401, {"message": "Token expired"}),
            make_response(401, {"message": "Invalid refresh token"}),
            access_token="old",
            refresh_token="r1",
        )

        with pytest.raises(NetworkFailure) as exc:
            client.list_accounts()
        assert exc.value.status_code == 401
        assert client.access_token is None

    def test_no_refresh_token(self):
        client, session = make_client(make_response(401, {"message": "Unauthorized"}))

        with pytest.raises(NetworkFailure):
            client.list_accounts()
        assert len(session.calls) == 1

    def test_login(self):
        client, _ = make_client(make_response(200, {
            "success": True,
            "data": {"accessToken": "a", "refreshToken": "r", "user": {"id": 3, "username": "sana"}},
        }))

        user = client.login("sana", "secret")

        assert user["id"] == 3
        assert client.access_token == "a"
        assert client.refresh_token == "r"
