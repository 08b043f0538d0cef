"""
HTTP helper shared by every client-side view.

Wraps an ``httpx.Client`` so the same code runs against a live server or,
in tests, against ``fastapi.testclient.TestClient`` (itself an httpx client).
"""
import logging
from typing import Any, Literal, Optional

import httpx

logger = logging.getLogger(__name__)

UnauthorizedBehavior = Literal["throw", "return_null"]


class ApiError(Exception):
    """A request failed: the server answered non-2xx, or it was unreachable (status 0)."""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(f"{status_code}: {message}" if status_code else message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase

    if isinstance(body, dict):
        detail = body.get("detail", body.get("message"))
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list):
            # FastAPI validation errors
            return "; ".join(str(item.get("msg", item)) for item in detail if item)
    return response.reason_phrase


class ApiClient:
    """JSON request helper with the conventions the views rely on."""

    def __init__(self, http: httpx.Client):
        self._http = http

    @classmethod
    def connect(cls, base_url: str, timeout: float = 10.0) -> "ApiClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def close(self) -> None:
        self._http.close()

    def request(self, method: str, path: str, json: Optional[Any] = None) -> Any:
        """Send a request; raises ApiError for any non-2xx answer or transport failure."""
        try:
            response = self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(0, "Network error. Please check your connection.") from e

        if response.is_error:
            raise ApiError(response.status_code, _error_message(response), _safe_json(response))

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise ApiError(response.status_code, "Invalid response from server") from e

    def get_query(self, path: str, on_unauthorized: UnauthorizedBehavior = "throw") -> Any:
        """GET used by cached queries; with ``return_null`` a 401 yields None."""
        try:
            return self.request("GET", path)
        except ApiError as e:
            if on_unauthorized == "return_null" and e.is_unauthorized:
                return None
            raise


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
