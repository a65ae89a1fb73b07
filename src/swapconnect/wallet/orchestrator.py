"""Wallet connection orchestration for relay-connected (EVM) chains.

open_session returns as soon as the pairing exists. Approval, transaction
building and signing then run in a background task per session; every
exit path of that task goes through the same terminal transition and
session cleanup.
"""

import asyncio
import logging
from typing import Any, Optional

from swapconnect.chains import ChainConfig, ConnectionFlow, get_chain
from swapconnect.config import Settings, get_settings
from swapconnect.errors import (
    ApprovalTimeout,
    ConfigurationError,
    InvalidSwapRequest,
    SessionNotFoundOrExpired,
    SigningTimeout,
    SwapConnectError,
    UpstreamError,
    user_message,
)
from swapconnect.notifications.telegram import format_swap_completed, format_swap_failed
from swapconnect.routing.base import AggregatorClient, EvmTransaction
from swapconnect.wallet.relay import (
    RelayClient,
    build_required_namespaces,
    build_send_params,
    extract_transaction_hash,
    extract_wallet_address,
)
from swapconnect.wallet.session import ProtocolState, Session, SessionHandle, SwapIntent
from swapconnect.wallet.store import SessionStore

logger = logging.getLogger(__name__)


class SessionOrchestrator:
    """Shared plumbing for both connection flows."""

    flow: ConnectionFlow

    def __init__(
        self,
        store: SessionStore,
        clients: list[AggregatorClient],
        notifier=None,
        metrics=None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.clients = clients
        self.notifier = notifier
        self.metrics = metrics
        self.settings = settings or get_settings()

    def _check_chain(self, chain_name: str) -> ChainConfig:
        chain = get_chain(chain_name)
        if chain.connection_flow != self.flow:
            raise InvalidSwapRequest(
                f"Chain {chain.name} does not use {self.flow.value} connections"
            )
        return chain

    def _resolve_client(self, intent: SwapIntent) -> AggregatorClient:
        """Find the aggregator the session is bound to.

        Raises:
            InvalidSwapRequest: If it is unknown or does not serve the chain
        """
        for client in self.clients:
            if client.name == intent.aggregator_id and client.supports_chain(intent.chain):
                return client
        raise InvalidSwapRequest(f"Aggregator {intent.aggregator_id} is not available for swap")

    def _new_session(self, user_id: str, intent: SwapIntent) -> Session:
        now = self.store.now()
        return Session(
            user_id=user_id,
            intent=intent,
            created_at=now,
            expires_at=now + self.settings.swap_timeout_seconds,
        )

    def _require_session(self, session_id: str) -> Session:
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundOrExpired(session_id)
        return session

    def _explorer_url(self, chain: str, transaction_hash: str) -> Optional[str]:
        prefix = self.settings.get_explorer_url(chain)
        return f"{prefix}{transaction_hash}" if prefix else None

    def _count(self, status: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_swap_request(status)

    async def _notify(self, user_id: str, message: str) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify(user_id, message)
        except Exception as e:
            logger.error(f"Notification to {user_id} failed: {e}")

    async def _complete(
        self,
        session_id: str,
        user_id: str,
        intent: SwapIntent,
        transaction_hash: str,
    ) -> Optional[str]:
        """Mark the session COMPLETED and report the hash to the user."""
        session = self.store.peek(session_id)
        if session is not None:
            session.transaction_hash = transaction_hash
            session.transition(ProtocolState.COMPLETED)
            self.store.save(session)

        explorer_url = self._explorer_url(intent.chain, transaction_hash)
        logger.info(f"Swap session {session_id} completed: {transaction_hash}")
        self._count("success")
        await self._notify(
            user_id, format_swap_completed(intent.aggregator_id, transaction_hash, explorer_url)
        )
        return explorer_url

    async def _fail(self, session_id: str, user_id: str, error: BaseException) -> None:
        """Mark the session FAILED and report the reason to the user."""
        session = self.store.peek(session_id)
        if session is not None and not session.protocol_state.is_terminal:
            session.failure_reason = str(error)
            session.transition(ProtocolState.FAILED)
            self.store.save(session)

        if isinstance(error, SwapConnectError):
            logger.warning(f"Swap session {session_id} failed: {type(error).__name__}: {error}")
        else:
            logger.exception(f"Swap session {session_id} failed unexpectedly")

        self._count("error")
        if self.metrics is not None:
            self.metrics.increment_error(type(error).__name__)
        await self._notify(user_id, format_swap_failed(user_message(error)))


class RelayConnectionOrchestrator(SessionOrchestrator):
    """Drives the relay approval and signing protocol for EVM chains."""

    flow = ConnectionFlow.RELAY

    def __init__(
        self,
        relay: Optional[RelayClient],
        store: SessionStore,
        clients: list[AggregatorClient],
        notifier=None,
        metrics=None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(store, clients, notifier, metrics, settings)
        self.relay = relay
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_flows(self) -> int:
        return len(self._tasks)

    async def open_session(self, user_id: str, intent: SwapIntent) -> SessionHandle:
        """Open a pairing and start the background approval flow.

        Returns immediately; it does not wait for the wallet.

        Raises:
            ConfigurationError: If no project id or relay client is set up
            InvalidSwapRequest: For a non-relay chain or unknown aggregator
        """
        if not self.settings.has_walletconnect:
            raise ConfigurationError("WC_PROJECT_ID is required for swaps")
        if self.relay is None:
            raise ConfigurationError("No relay client configured")

        chain = self._check_chain(intent.chain)
        self._resolve_client(intent)

        pairing = await self.relay.open_pairing(build_required_namespaces(chain))

        session = self._new_session(user_id, intent)
        session.uri = pairing.uri
        session.approval = pairing.approval
        self.store.save(session)
        self._count("initiated")
        logger.info(
            f"Relay session {session.session_id} opened for user {user_id} "
            f"({intent.aggregator_id} on {chain.name})"
        )

        task = asyncio.create_task(self._run_session(session.session_id, user_id, chain))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return session.public()

    def _remaining(self, session: Session, error_cls: type[SwapConnectError]) -> float:
        remaining = session.expires_at - self.store.now()
        if remaining <= 0:
            raise error_cls()
        return remaining

    async def _wait(
        self,
        awaitable: Any,
        timeout: float,
        error_cls: type[SwapConnectError],
    ) -> Any:
        """Await a wallet step until the session expires."""
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise error_cls() from e
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # Handle cancelled by store eviction
            raise error_cls()

    async def _run_session(self, session_id: str, user_id: str, chain: ChainConfig) -> None:
        try:
            session = self._require_session(session_id)
            intent = session.intent
            approved = await self._wait(
                session.approval, self._remaining(session, ApprovalTimeout), ApprovalTimeout
            )

            session = self._require_session(session_id)
            session.approval = None
            session.topic = approved.topic
            session.wallet_address = extract_wallet_address(approved.accounts, chain.caip_chain_id)
            session.transition(ProtocolState.APPROVED)
            self.store.save(session)
            logger.info(f"Session {session_id} approved by {session.wallet_address}")

            client = self._resolve_client(intent)
            transaction = await client.build_swap_transaction(
                intent.to_swap_request(session.wallet_address)
            )
            if not isinstance(transaction, EvmTransaction):
                raise UpstreamError(f"{client.name} returned a non-EVM transaction")

            session = self._require_session(session_id)
            session.transition(ProtocolState.SIGNING_REQUESTED)
            self.store.save(session)

            timeout = self._remaining(session, SigningTimeout)
            result = await self._wait(
                self.relay.request(
                    session.topic,
                    chain.caip_chain_id,
                    chain.sign_method,
                    build_send_params(transaction, session.wallet_address),
                ),
                timeout,
                SigningTimeout,
            )
            transaction_hash = extract_transaction_hash(result)
            await self._complete(session_id, user_id, intent, transaction_hash)

        except asyncio.CancelledError:
            logger.info(f"Session {session_id} flow cancelled")
            raise
        except Exception as e:
            await self._fail(session_id, user_id, e)
        finally:
            self.store.delete(session_id)

    async def drain(self) -> None:
        """Wait for every background flow to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background flows (shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Cancelled {len(tasks)} pending relay flow(s)")
