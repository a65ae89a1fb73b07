"""Broadcast of wallet-signed transactions.

Deep-link wallets hand back signed bytes instead of submitting them, so
the service submits them itself through the chain's RPC.
"""

import base64
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from swapconnect.errors import BroadcastRejected, UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

SOLANA_RPC = "https://api.mainnet-beta.solana.com"
DEFAULT_RPC_TIMEOUT = 30.0


class BroadcastCapability(ABC):
    """Submits signed transactions for one chain."""

    @abstractmethod
    async def broadcast(self, signed_transaction: bytes, validity_bound: Optional[int]) -> str:
        """Submit a signed transaction.

        Args:
            signed_transaction: Raw signed transaction bytes
            validity_bound: Last block height at which it may land

        Returns:
            Transaction hash (signature)

        Raises:
            BroadcastRejected: If the bound elapsed or the network refused it
        """
        pass


class SolanaRpcBroadcaster(BroadcastCapability):
    """Solana JSON-RPC broadcaster."""

    def __init__(
        self,
        rpc_url: str = SOLANA_RPC,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        metrics=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.metrics = metrics
        self._transport = transport

    async def _rpc(self, client: httpx.AsyncClient, method: str, params: list) -> Any:
        status_code = "error"
        started = time.monotonic()
        try:
            response = await client.post(
                self.rpc_url,
                json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
            )
            status_code = str(response.status_code)
            if response.status_code != 200:
                raise UpstreamError(f"Solana RPC {method} returned HTTP {response.status_code}")
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError(f"Solana RPC {method} returned a non-JSON body") from e
        except httpx.TimeoutException as e:
            status_code = "timeout"
            raise UpstreamTimeout(f"Solana RPC {method} timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Solana RPC {method} failed: {e}") from e
        finally:
            if self.metrics is not None:
                self.metrics.observe_external_request(
                    "solana_rpc", method, status_code, time.monotonic() - started
                )

    @staticmethod
    def _error_message(error: Any) -> str:
        if isinstance(error, dict):
            return str(error.get("message", error))
        return str(error)

    async def get_block_height(self, client: httpx.AsyncClient) -> int:
        data = await self._rpc(client, "getBlockHeight", [{"commitment": "confirmed"}])
        if "error" in data:
            raise UpstreamError(
                f"Solana RPC getBlockHeight error: {self._error_message(data['error'])}"
            )
        result = data.get("result")
        if not isinstance(result, int):
            raise UpstreamError("Solana RPC getBlockHeight returned no height")
        return result

    async def broadcast(self, signed_transaction: bytes, validity_bound: Optional[int]) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            if validity_bound is not None:
                height = await self.get_block_height(client)
                if height > validity_bound:
                    logger.warning(
                        f"Solana transaction expired: block height {height} > {validity_bound}"
                    )
                    raise BroadcastRejected("Transaction validity bound has elapsed")

            signed_b64 = base64.b64encode(signed_transaction).decode()
            data = await self._rpc(
                client,
                "sendTransaction",
                [
                    signed_b64,
                    {
                        "encoding": "base64",
                        "skipPreflight": False,
                        "preflightCommitment": "confirmed",
                    },
                ],
            )

        if "error" in data:
            error_msg = self._error_message(data["error"])
            logger.warning(f"Solana RPC rejected transaction: {error_msg}")
            raise BroadcastRejected(f"Solana RPC rejected transaction: {error_msg}")

        txid = data.get("result")
        if not isinstance(txid, str) or not txid:
            raise BroadcastRejected("Solana RPC returned no signature")

        logger.info(f"Solana tx broadcast: {txid}")
        return txid
