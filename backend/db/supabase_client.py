"""Minimal Supabase PostgREST client used by backend repositories only."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


logger = logging.getLogger(__name__)


Query = dict[str, str | int] | list[tuple[str, str | int]]


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str


class SupabaseClient:
    """Store handle shared by every repository of one application instance.

    The handle is opened by the composition root and closed on shutdown; any
    request issued after `close()` fails instead of reaching the network.
    """

    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def healthcheck(self) -> bool:
        return not self._closed and bool(self.settings.url and self.settings.service_role_key)

    def _build_request(
        self,
        *,
        table: str,
        method: str,
        query: Query | None,
        payload: object | None,
        prefer: str,
    ) -> Request:
        if self._closed:
            raise RuntimeError("Supabase client is closed")
        api_key = self.settings.service_role_key
        if not api_key:
            raise ValueError("Missing Supabase API key")

        url = f"{self.settings.url.rstrip('/')}/rest/v1/{table}"
        encoded_query = urlencode(query, doseq=True) if query else ""
        if encoded_query:
            url = f"{url}?{encoded_query}"

        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Prefer": prefer,
        }
        data = None
        if payload is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(payload).encode("utf-8")

        return Request(url=url, data=data, headers=headers, method=method)

    def _send(self, request: Request) -> tuple[list[dict[str, Any]], str | None]:
        try:
            with urlopen(request) as response:  # noqa: S310 - URL comes from trusted env config
                raw_body = response.read().decode("utf-8")
                rows = json.loads(raw_body, parse_float=Decimal) if raw_body else []
                return rows, response.headers.get("content-range")
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            logger.warning(
                "supabase_request_failed method=%s status=%s", request.get_method(), exc.code
            )
            raise RuntimeError(
                f"Supabase request failed with status {exc.code}: {body}"
            ) from exc

    def get_rows(
        self,
        *,
        table: str,
        query: Query,
        with_count: bool,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Fetch rows from PostgREST and optionally parse exact row count."""

        request = self._build_request(
            table=table,
            method="GET",
            query=query,
            payload=None,
            prefer="count=exact" if with_count else "return=representation",
        )
        rows, content_range = self._send(request)
        total: int | None = None
        if with_count and content_range and "/" in content_range:
            _, total_str = content_range.split("/", maxsplit=1)
            if total_str.isdigit():
                total = int(total_str)
        return rows, total

    def post_rows(
        self,
        *,
        table: str,
        payload: dict[str, object] | list[dict[str, object]],
        prefer: str = "return=representation",
    ) -> list[dict[str, Any]]:
        request = self._build_request(
            table=table, method="POST", query=None, payload=payload, prefer=prefer
        )
        rows, _ = self._send(request)
        return rows

    def patch_rows(
        self,
        *,
        table: str,
        query: Query,
        payload: dict[str, object],
    ) -> list[dict[str, Any]]:
        request = self._build_request(
            table=table,
            method="PATCH",
            query=query,
            payload=payload,
            prefer="return=representation",
        )
        rows, _ = self._send(request)
        return rows

    def delete_rows(self, *, table: str, query: Query) -> list[dict[str, Any]]:
        request = self._build_request(
            table=table,
            method="DELETE",
            query=query,
            payload=None,
            prefer="return=representation",
        )
        rows, _ = self._send(request)
        return rows
