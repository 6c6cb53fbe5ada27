"""
HTTP client for the backend-as-a-service.

Talks the Supabase REST dialect: rows under ``/rest/v1`` (PostgREST
filters), objects under ``/storage/v1`` and auth under ``/auth/v1``.
Every call goes through ``request`` so connectivity transitions and error
payloads are handled in one place.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar
from urllib.parse import quote

import pydantic
import requests

from .connectivity import ConnectivityMonitor
from .exceptions import NetworkError, RemoteError
from .logging import get_logger


logger = get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]
Order = Sequence[Tuple[str, bool]]
ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _format_filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def build_query(
    columns: str = "*",
    filters: Optional[Mapping[str, Any]] = None,
    order: Optional[Order] = None,
    limit: Optional[int] = None,
) -> Dict[str, str]:
    """Translate equality filters, ordering and limit into PostgREST params."""
    params: Dict[str, str] = {"select": columns}
    for column, value in (filters or {}).items():
        op = "is" if value is None else "eq"
        params[column] = f"{op}.{_format_filter_value(value)}"
    if order:
        params["order"] = ",".join(
            f"{column}.{'desc' if descending else 'asc'}" for column, descending in order
        )
    if limit is not None:
        params["limit"] = str(limit)
    return params


def _error_message(payload: Dict[str, Any]) -> str:
    for key in ("message", "error_description", "msg", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return "Unknown error"


def _ensure_json_response(response: requests.Response) -> Any:
    if response.status_code >= 400:
        try:
            error_payload = response.json()
        except ValueError:
            body = response.text or response.reason or "Unknown error"
            error_payload = {
                "error": body,
                "details": {
                    "status": response.status_code,
                    "url": str(response.url),
                },
            }
        if not isinstance(error_payload, dict):
            error_payload = {"error": str(error_payload)}
        raise RemoteError(
            _error_message(error_payload),
            payload=error_payload,
            status=response.status_code,
        )

    if not response.content:
        return None

    try:
        return response.json()
    except ValueError as exc:
        raise RemoteError(
            f"Invalid JSON response: {exc}. Body: {response.text!r}",
            status=response.status_code,
        ) from exc


def parse_row(model: Type[ModelT], row: Any) -> ModelT:
    """Validate a row returned by the backend; malformed data is a ``RemoteError``."""
    try:
        return model.model_validate(row)
    except pydantic.ValidationError as exc:
        logger.warning("Malformed row from backend", model=model.__name__, errors=exc.error_count())
        raise RemoteError(
            f"Unexpected {model.__name__} data from server.",
            payload={"errors": [error["msg"] for error in exc.errors()]},
        ) from exc


class RemoteClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30,
        connectivity: Optional[ConnectivityMonitor] = None,
        token_provider: Optional[TokenProvider] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.connectivity = connectivity
        self.token_provider = token_provider
        self.http = http or requests.Session()

    @property
    def health_url(self) -> str:
        return f"{self.base_url}/auth/v1/health"

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self, authenticated: bool, extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
        headers = {"apikey": self.api_key}
        token = self.token_provider() if (authenticated and self.token_provider) else None
        headers["Authorization"] = f"Bearer {token or self.api_key}"
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
        authenticated: bool = True,
    ) -> Any:
        url = path if path.startswith("http") else self.url(path)
        logger.debug("Remote request", method=method, path=path)
        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=self._headers(authenticated, headers),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning("Remote unreachable", method=method, path=path, error=str(exc))
            if self.connectivity is not None:
                self.connectivity.set_online(False)
            raise NetworkError(f"Network unavailable: {exc}") from exc
        except requests.RequestException as exc:
            logger.warning("Remote request failed", method=method, path=path, error=str(exc))
            raise RemoteError(f"Request failed: {exc}") from exc

        if self.connectivity is not None:
            self.connectivity.set_online(True)
        logger.debug("Remote response", method=method, path=path, status=response.status_code)
        return _ensure_json_response(response)

    # Rows

    def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[Order] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = build_query(columns, filters, order, limit)
        return self.request("GET", f"/rest/v1/{table}", params=params) or []

    def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return self.request(
            "POST",
            f"/rest/v1/{table}",
            params={"select": "*"},
            json=[dict(row) for row in rows],
            headers={"Prefer": "return=representation"},
        ) or []

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> List[Dict[str, Any]]:
        params = build_query(filters=filters)
        return self.request(
            "PATCH",
            f"/rest/v1/{table}",
            params=params,
            json=dict(values),
            headers={"Prefer": "return=representation"},
        ) or []

    def delete(self, table: str, *, filters: Mapping[str, Any]) -> None:
        params = build_query(filters=filters)
        params.pop("select")
        self.request("DELETE", f"/rest/v1/{table}", params=params)

    # Storage

    def upload(self, bucket: str, name: str, data: bytes, content_type: str) -> None:
        self.request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(name)}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )

    def public_url(self, bucket: str, name: str) -> str:
        return self.url(f"/storage/v1/object/public/{bucket}/{quote(name)}")

    def download(self, url: str) -> bytes:
        try:
            response = self.http.get(url, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkError(f"Network unavailable: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteError(f"Download failed: {exc}") from exc
        if response.status_code >= 400:
            raise RemoteError(
                f"Download failed with status {response.status_code}",
                status=response.status_code,
            )
        return response.content


__all__ = ["RemoteClient", "build_query", "parse_row"]
