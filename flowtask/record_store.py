"""Async HTTP client for the generic record-store API.

Every call returns the decoded response envelope::

    {"success": bool, "data": ..., "results": [...], "message": str}

Transport failures, non-2xx statuses, undecodable bodies and envelopes with
``success: false`` are raised as :class:`PersistenceError`. Per-record
results are left for the caller to inspect.
"""

import logging
from typing import Any, Optional

import httpx

from flowtask.errors import PersistenceError

logger = logging.getLogger(__name__)


class RecordStoreClient:
    """Thin wrapper over ``httpx.AsyncClient`` for one record-store project.

    Args:
        base_url: Root URL of the record-store API.
        project_id: Project identifier sent as ``X-Project-Id``.
        public_key: Public API key sent as a bearer token.
        timeout: Per-request timeout in seconds.
        transport: Optional transport override (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        project_id: str = "",
        public_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if project_id:
            headers["X-Project-Id"] = project_id
        if public_key:
            headers["Authorization"] = f"Bearer {public_key}"
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RecordStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -- record operations ----------------------------------------------------

    async def fetch_records(
        self, table: str, params: dict[str, Any]
    ) -> dict[str, Any]:
        """Query many records with fields, where, orderBy and pagingInfo."""
        return await self._send(
            "POST", f"/tables/{table}/records/query", json=params
        )

    async def get_record_by_id(
        self, table: str, record_id: Any, params: Optional[dict[str, Any]] = None
    ) -> Optional[dict[str, Any]]:
        """Fetch one record. Returns None when the store answers 404."""
        query = {}
        if params and params.get("fields"):
            query["fields"] = ",".join(params["fields"])
        return await self._send(
            "GET",
            f"/tables/{table}/records/{record_id}",
            params=query,
            allow_missing=True,
        )

    async def create_record(
        self, table: str, params: dict[str, Any]
    ) -> dict[str, Any]:
        """Create the records listed under ``params["records"]``."""
        return await self._send("POST", f"/tables/{table}/records", json=params)

    async def update_record(
        self, table: str, params: dict[str, Any]
    ) -> dict[str, Any]:
        """Update the records listed under ``params["records"]``."""
        return await self._send("PATCH", f"/tables/{table}/records", json=params)

    async def delete_record(
        self, table: str, params: dict[str, Any]
    ) -> dict[str, Any]:
        """Delete the ids listed under ``params["RecordIds"]``."""
        return await self._send("DELETE", f"/tables/{table}/records", json=params)

    # -- private helpers ------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        allow_missing: bool = False,
    ) -> Optional[dict[str, Any]]:
        try:
            response = await self._http.request(
                method, path, json=json, params=params
            )
        except httpx.TimeoutException as exc:
            logger.error("Record store request timed out: %s %s", method, path)
            raise PersistenceError("Record store request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Record store unreachable: %s %s: %s", method, path, exc)
            raise PersistenceError(f"Record store unreachable: {exc}") from exc

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            logger.error(
                "Record store returned %d for %s %s",
                response.status_code, method, path,
            )
            raise PersistenceError(
                f"Record store returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise PersistenceError("Record store returned non-JSON body") from exc

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise PersistenceError(message or f"Record store rejected {method} {path}")

        return body
