"""HTTP client for the Supabase (PostgREST) tables backing the resonance store."""

import json
import logging
from typing import Any

import aiohttp

from resonance.config import SupabaseConfig
from resonance.models import Patch, ResonanceKey
from resonance.schemas import (
    RESONANCE_COLUMNS,
    SEMANTICS_COLUMNS,
    ResonancePayload,
    ResonanceWrite,
    SemanticsPayload,
)

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 200


class RemoteError(Exception):
    """A remote read or write did not succeed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _error_message(body: str, status: int) -> str:
    """Extract a human-readable message from an error response body."""
    text = (body or "").strip()
    if text:
        try:
            payload = json.loads(text)
        except ValueError:
            return text[:_ERROR_BODY_LIMIT]
        if isinstance(payload, dict):
            for field in ("message", "error", "msg"):
                if payload.get(field):
                    return str(payload[field])
        return text[:_ERROR_BODY_LIMIT]
    return f"HTTP {status}"


def to_write_row(key: ResonanceKey, patch: Patch) -> ResonanceWrite:
    """Build the wire form of one patched row."""
    return {
        "emoji": key.tag,
        "media_path": key.media_path,
        "role": key.role,
        "intensity": patch.intensity,
        "enabled": patch.enabled,
    }


class SupabaseClient:
    """Reads and writes resonance rows through the PostgREST API."""

    def __init__(self, config: SupabaseConfig, session: aiohttp.ClientSession | None = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {self.config.anon_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
        expect_json: bool = True,
    ) -> Any:
        """Issue one request; every failure mode surfaces as RemoteError."""
        logger.debug("%s %s params=%s", method, url, params)
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_s),
            ) as resp:
                status = resp.status
                raw = await resp.read()
        except (TimeoutError, aiohttp.ClientError) as e:
            raise RemoteError(f"Network error: {e}") from e

        if status >= 400:
            raise RemoteError(_error_message(raw.decode("utf-8", errors="replace"), status), status=status)
        if not expect_json:
            return None
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RemoteError(f"Malformed response from {url}: {e}") from e
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise RemoteError(f"Malformed JSON from {url}: {e}") from e

    async def _select(self, table: str, columns: tuple[str, ...], order: str) -> list[dict]:
        payload = await self._request(
            "GET",
            f"{self.config.rest_url}/{table}",
            params={"select": ",".join(columns), "order": order},
            headers=self._headers(),
        )
        if not isinstance(payload, list):
            raise RemoteError(f"Expected a list of rows from {table}, got {type(payload).__name__}")
        return payload

    async def fetch_resonance(self) -> list[ResonancePayload]:
        """Fetch every resonance row ordered by tag."""
        return await self._select(self.config.resonance_table, RESONANCE_COLUMNS, "emoji.asc")

    async def fetch_semantics(self) -> list[SemanticsPayload]:
        """Fetch every media semantics row ordered by path."""
        return await self._select(self.config.semantics_table, SEMANTICS_COLUMNS, "path.asc")

    async def update_resonance(self, key: ResonanceKey, patch: Patch) -> None:
        """Write one row's intensity and enabled flag, keyed by its composite key.

        Raises:
            RemoteError: on transport failure, error status, or when no
                remote row matched the key.
        """
        updated = await self._request(
            "PATCH",
            f"{self.config.rest_url}/{self.config.resonance_table}",
            params={
                "emoji": f"eq.{key.tag}",
                "media_path": f"eq.{key.media_path}",
                "role": f"eq.{key.role}",
            },
            body=patch.to_dict(),
            headers=self._headers({"Prefer": "return=representation"}),
        )
        if not updated:
            raise RemoteError(f"No remote row matched {key.tag} / {key.media_path} / {key.role}")

    async def bulk_save(self, url: str, rows: list[ResonanceWrite]) -> None:
        """Send every patched row in a single call to the bulk save endpoint."""
        if not url:
            raise RemoteError("Bulk save URL is not configured")
        await self._request(
            "POST",
            url,
            body={"rows": rows},
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            expect_json=False,
        )
