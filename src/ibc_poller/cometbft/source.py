"""CometBFT/Tendermint JSON-RPC BlockSource over httpx."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from ibc_poller.cometbft.decode import decode_block_results, encoding_for_version
from ibc_poller.errors import ChainUnavailable, HeightNotYetProduced, HeightUnavailable
from ibc_poller.models.config import AttributeEncoding, ChainConfig
from ibc_poller.models.events import TxResult

log = logging.getLogger(__name__)

# Error strings returned in the JSON-RPC "data" field
_NOT_YET_RE = re.compile(
    r"height (\d+) must be less than or equal to the current blockchain height (\d+)"
)
_PRUNED_RE = re.compile(r"height (\d+) is not available, lowest height is (\d+)")


class CometBFTBlockSource:
    """Reads heights and block results from a node's RPC endpoint.

    Owns one ``httpx.AsyncClient``; close it with ``aclose()`` or use the
    source as an async context manager.
    """

    def __init__(
        self,
        rpc_url: str,
        chain_id: str = "",
        request_timeout: float = 10.0,
        attribute_encoding: AttributeEncoding = AttributeEncoding.AUTO,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = rpc_url.rstrip("/")
        self._chain_id = chain_id
        self._encoding = attribute_encoding
        self._client = client or httpx.AsyncClient(timeout=request_timeout)
        self._owns_client = client is None

    @classmethod
    def from_config(cls, chain: ChainConfig) -> CometBFTBlockSource:
        return cls(
            rpc_url=chain.rpc_url,
            chain_id=chain.chain_id,
            request_timeout=chain.request_timeout,
            attribute_encoding=chain.attribute_encoding,
        )

    @property
    def chain_id(self) -> str:
        return self._chain_id or self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> CometBFTBlockSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── BlockSource ────────────────────────────────────────

    async def current_height(self) -> int:
        status = await self.status()
        try:
            return int(status["sync_info"]["latest_block_height"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ChainUnavailable(self.chain_id, f"malformed /status response: {exc}") from exc

    async def tx_results_at(self, height: int) -> list[TxResult]:
        try:
            result = await self._get("block_results", height=str(height))
        except ChainUnavailable as exc:
            narrowed = self._classify(exc, height)
            if narrowed is exc:
                raise
            raise narrowed from exc

        encoding = await self._attribute_encoding()
        return decode_block_results(result, height, encoding, self.chain_id)

    # ── Helpers ────────────────────────────────────────────

    async def status(self) -> dict[str, Any]:
        """Raw ``/status`` result. Fills in chain_id from the node if unset."""
        result = await self._get("status")
        node_info = result.get("node_info") or {}
        if not self._chain_id and node_info.get("network"):
            self._chain_id = node_info["network"]
        if self._encoding is AttributeEncoding.AUTO and node_info.get("version"):
            self._encoding = encoding_for_version(node_info["version"])
            log.debug("%s: node %s uses %s attributes",
                      self.chain_id, node_info["version"], self._encoding.value)
        return result

    async def _attribute_encoding(self) -> AttributeEncoding:
        if self._encoding is AttributeEncoding.AUTO:
            await self.status()
        if self._encoding is AttributeEncoding.AUTO:
            # Node did not report a version
            self._encoding = AttributeEncoding.PLAIN
        return self._encoding

    async def _get(self, endpoint: str, **params: str) -> dict[str, Any]:
        url = f"{self._base_url}/{endpoint}"
        try:
            resp = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise ChainUnavailable(self.chain_id, f"{endpoint}: {exc!r}") from exc

        try:
            body = resp.json()
        except ValueError:
            raise ChainUnavailable(
                self.chain_id, f"{endpoint}: HTTP {resp.status_code}, non-JSON body",
            ) from None

        if isinstance(body, dict) and body.get("error"):
            err = body["error"]
            if isinstance(err, dict):
                detail = err.get("data") or err.get("message") or str(err)
            else:
                detail = str(err)
            raise ChainUnavailable(self.chain_id, f"{endpoint}: {detail}")

        if resp.status_code >= 400 or not isinstance(body, dict) or "result" not in body:
            raise ChainUnavailable(self.chain_id, f"{endpoint}: HTTP {resp.status_code}")

        return body["result"]

    def _classify(self, exc: ChainUnavailable, height: int) -> ChainUnavailable:
        """Narrow a block_results error to not-yet-produced / pruned when possible."""
        if m := _NOT_YET_RE.search(exc.detail):
            return HeightNotYetProduced(self.chain_id, height, int(m.group(2)))
        if m := _PRUNED_RE.search(exc.detail):
            return HeightUnavailable(self.chain_id, height, int(m.group(2)))
        return exc
