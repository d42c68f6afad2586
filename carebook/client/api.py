import logging
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .session import AuthSession

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised for non-2xx responses and transport failures.

    ``status_code`` is None when the request never reached the server.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


def _error_message(response: httpx.Response, body: Any) -> str:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("detail")
        if message:
            return str(message)
    return response.text or response.reason_phrase or f"HTTP {response.status_code}"


class ApiClient:
    """Thin wrapper over ``httpx.Client`` that speaks the response envelope.

    Every call attaches ``Authorization: Bearer <token>`` when the bound
    session holds a token, and returns the envelope's ``data``.
    """

    def __init__(self, base_url: str, session: Optional["AuthSession"] = None, timeout: float = 15.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.session = session
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.session.token if self.session is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = self._client.request(method, path, json=json, params=params or None, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = _error_message(response, body)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise ApiError(message, response.status_code, body)

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
