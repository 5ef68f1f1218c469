"""
Elasticsearch sink over the REST API (httpx).

One index per channel, named from ``index_pattern`` with ``$channelname$``
substituted. Records are indexed under their message id, so re-exporting a
channel overwrites rather than duplicates.
"""

from __future__ import annotations

import json
from typing import Optional, Sequence

import httpx
from loguru import logger

from ..errors import BulkIndexError, SinkInitError
from ..metrics import observe_write
from ..models import ExportRecord

CHANNEL_PLACEHOLDER = "$channelname$"


def index_name(pattern: str, channel_name: str) -> str:
    """Index names must be lowercase and cannot contain '#'."""
    return pattern.replace(CHANNEL_PLACEHOLDER, channel_name.replace("#", "__")).lower()


class ElasticsearchSink:
    name = "elasticsearch"

    def __init__(
        self,
        url: str = "http://localhost:9200",
        index_pattern: str = "chat_$channelname$",
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._pattern = index_pattern
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ElasticsearchSink":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def init(self) -> None:
        """Open the HTTP client and ping the cluster."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._url, timeout=self._timeout, transport=self._transport
        )
        try:
            resp = await self._client.get("/")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            await self.close()
            raise SinkInitError(f"Elasticsearch is down at {self._url}: {e}") from e
        logger.info(f"Elasticsearch sink connected to {self._url}")

    async def write(self, channel_name: str, record: ExportRecord) -> None:
        client = self._require_client()
        index = index_name(self._pattern, channel_name)
        with observe_write(self.name):
            resp = await client.put(
                f"/{index}/_doc/{record.id}", json=record.to_document(channel_name)
            )
            resp.raise_for_status()

    async def write_batch(self, channel_name: str, records: Sequence[ExportRecord]) -> None:
        if not records:
            return
        client = self._require_client()
        index = index_name(self._pattern, channel_name)

        lines = []
        for r in records:
            lines.append(json.dumps({"index": {"_id": str(r.id)}}))
            lines.append(json.dumps(r.to_document(channel_name), ensure_ascii=False))
        body = "\n".join(lines) + "\n"

        with observe_write(self.name):
            resp = await client.post(
                f"/{index}/_bulk",
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/x-ndjson"},
            )
            resp.raise_for_status()
            result = resp.json()
            if result.get("errors"):
                failed = [
                    item.get("index", {})
                    for item in result.get("items", [])
                    if item.get("index", {}).get("error")
                ]
                raise BulkIndexError(
                    f"{len(failed)} of {len(records)} documents rejected by {index}: "
                    f"{failed[0].get('error') if failed else 'unknown error'}"
                )

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ElasticsearchSink used before init()")
        return self._client
