"""HTTP client for the watch authenticator API."""

import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import BaseModel

from watchauth.config import settings
from watchauth.errors import BackendError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    400: ValidationError,
    404: NotFoundError,
}


def _as_payload(value: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


class WatchAuthClient:
    """Thin async wrapper over the JSON endpoints.

    Error envelopes become ``WatchAuthError`` subclasses: 400 and 404 keep
    their meaning, every other failure (including transport errors) is a
    ``BackendError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        admin_api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.admin_api_key = admin_api_key if admin_api_key is not None else settings.admin_api_key
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {}
            if self.admin_api_key:
                headers["X-Admin-API-Key"] = self.admin_api_key
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.api_timeout_seconds,
                headers=headers,
            )
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise BackendError(f"Request to {path} failed", detail=str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success:
            return body

        message = body.get("error") if isinstance(body, dict) else None
        error_cls = _STATUS_ERRORS.get(response.status_code, BackendError)
        logger.warning(f"{method} {path} returned {response.status_code}: {message}")
        raise error_cls(
            message or f"Request failed with status {response.status_code}",
            detail=body.get("detail") if isinstance(body, dict) else None,
        )

    # Matching

    async def match_references(
        self, analysis: Union[BaseModel, Dict[str, Any]], session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"analysis": _as_payload(analysis)}
        if session_id:
            payload["sessionId"] = session_id
        return await self._request("POST", "/api/references/match", json=payload)

    async def analyze(self, images: List[str]) -> Dict[str, Any]:
        return await self._request("POST", "/api/analyze", json={"images": images})

    # Reference library

    async def list_references(
        self,
        page: int = 1,
        limit: int = 25,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        for key, value in (("brand", brand), ("model", model), ("status", status), ("search", search)):
            if value:
                params[key] = value
        return await self._request("GET", "/api/references", params=params)

    async def get_reference(self, reference_id: str) -> Dict[str, Any]:
        body = await self._request("GET", f"/api/references/{reference_id}")
        return body["data"]

    async def create_reference(self, record: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("POST", "/api/references", json=record)
        return body["data"]

    async def update_reference(self, reference_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("PATCH", f"/api/references/{reference_id}", json=changes)
        return body["data"]

    async def delete_reference(self, reference_id: str) -> None:
        await self._request("DELETE", f"/api/references/{reference_id}")

    # History

    async def record_analysis(self, record: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("POST", "/api/history", json=record)
        return body["data"]

    async def list_history(
        self,
        page: int = 1,
        limit: int = 12,
        brand: Optional[str] = None,
        confidence: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if brand:
            params["brand"] = brand
        if confidence:
            params["confidence"] = confidence
        return await self._request("GET", "/api/history", params=params)

