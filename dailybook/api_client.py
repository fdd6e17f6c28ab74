"""
Backend REST client

Thin wrapper over requests: bearer token, JSON bodies, `{"data": ...}`
envelope unwrapping and one token refresh on 401. Every failed exchange is
raised as NetworkFailure carrying the server's message when there is one.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

import requests

from dailybook.core.config import settings
from dailybook.core.exceptions import NetworkFailure
from dailybook.schemas import FilterCriteria

logger = logging.getLogger(__name__)

AUTH_ENDPOINTS = ("/auth/login", "/auth/refresh")


def error_message(response: requests.Response) -> str:
    """Server message from a failed response, falling back to the status text"""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    text = (response.text or "").strip()
    return text or response.reason or f"Request failed with status {response.status_code}"


def unwrap(body: Any) -> Any:
    """Return the `data` member of `{success, data}` envelopes, else the body"""
    if isinstance(body, dict) and "data" in body and (
        "success" in body or set(body) <= {"data", "message", "pagination", "meta"}
    ):
        return body["data"]
    return body


class BackendClient:
    """HTTP collaborator for accounts, counterparties, transactions and junctions"""

    def __init__(self, base_url: Optional[str] = None, access_token: Optional[str] = None,
                 refresh_token: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None,
                 on_tokens: Optional[Callable[[str, str], None]] = None):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.on_tokens = on_tokens

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if extra:
            headers.update(extra)
        return headers

    def _send(self, method: str, endpoint: str, data=None, params=None,
              headers: Optional[Dict[str, str]] = None) -> requests.Response:
        try:
            return self.session.request(
                method,
                self.url(endpoint),
                json=data,
                params=params,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Backend connection error on {method} {endpoint}: {e}")
            raise NetworkFailure("Backend connection error") from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Backend timeout on {method} {endpoint}: {e}")
            raise NetworkFailure("Backend request timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Backend request failed on {method} {endpoint}: {e}", exc_info=True)
            raise NetworkFailure(str(e)) from e

    def request(self, method: str, endpoint: str, data=None, params=None,
                headers: Optional[Dict[str, str]] = None) -> Any:
        """Send a request and return the unwrapped JSON body"""
        method = method.upper()
        response = self._send(method, endpoint, data=data, params=params, headers=headers)

        if response.status_code == 401 and not endpoint.startswith(AUTH_ENDPOINTS):
            if self.refresh_access_token():
                response = self._send(method, endpoint, data=data, params=params, headers=headers)

        if not response.ok:
            message = error_message(response)
            logger.warning(f"{method} {endpoint} failed ({response.status_code}): {message}")
            raise NetworkFailure(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return unwrap(response.json())
        except ValueError as e:
            raise NetworkFailure("Backend returned an invalid response", status_code=response.status_code) from e

    def get(self, endpoint: str, params=None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, data=None, headers=None) -> Any:
        return self.request("POST", endpoint, data=data, headers=headers)

    def delete(self, endpoint: str) -> Any:
        return self.request("DELETE", endpoint)

    # ==================== AUTH ====================

    def _store_tokens(self, data: Dict[str, Any]):
        self.access_token = data.get("accessToken") or data.get("access_token")
        self.refresh_token = data.get("refreshToken") or data.get("refresh_token") or self.refresh_token
        if self.on_tokens:
            self.on_tokens(self.access_token, self.refresh_token)

    def login(self, identifier: str, password: str) -> Dict[str, Any]:
        """Exchange credentials for tokens; returns the user record"""
        data = self.post("/auth/login", {"identifier": identifier, "password": password}) or {}
        self._store_tokens(data)
        return data.get("user") or {}

    def refresh_access_token(self) -> bool:
        if not self.refresh_token:
            return False
        try:
            data = self.post("/auth/refresh", {"refreshToken": self.refresh_token}) or {}
        except NetworkFailure as e:
            logger.warning(f"Token refresh failed: {e.message}")
            self.access_token = None
            return False
        self._store_tokens(data)
        return bool(self.access_token)

    # ==================== READ MODELS ====================

    def list_accounts(self) -> List[Dict[str, Any]]:
        return self.get("/accounts") or []

    def account_stats(self) -> Dict[str, Any]:
        return self.get("/accounts/stats") or {}

    def list_account_payables(self) -> List[Dict[str, Any]]:
        return self.get("/account-payables") or []

    def list_account_receivables(self) -> List[Dict[str, Any]]:
        return self.get("/account-receivables") or []

    def list_transactions(self, criteria: Optional[FilterCriteria] = None, page: Optional[int] = None,
                          limit: Optional[int] = None) -> List[Dict[str, Any]]:
        criteria = criteria or FilterCriteria()
        params = criteria.to_query_params(page=page, limit=limit)
        result = self.get("/transactions", params=params)
        if isinstance(result, dict):
            return result.get("transactions") or result.get("items") or []
        return result or []

    # ==================== WRITES ====================

    def create_transaction(self, payload: Dict[str, Any], idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return self.post("/transactions", payload, headers=headers) or {}

    def delete_transaction(self, transaction_id: str) -> Any:
        return self.delete(f"/transactions/{transaction_id}")

    # ==================== JUNCTIONS ====================

    def list_junction(self, kind: str, owner_path: str, owner_id: str) -> List[Dict[str, Any]]:
        return self.get(f"/{kind}/{owner_path}/{owner_id}") or []

    def add_junction(self, kind: str, body: Dict[str, Any]) -> Any:
        return self.post(f"/{kind}", body)

    def remove_junction(self, kind: str, owner_path: str, owner_id: str,
                        related_path: str, related_id: str) -> Any:
        return self.delete(f"/{kind}/{owner_path}/{owner_id}/{related_path}/{related_id}")
