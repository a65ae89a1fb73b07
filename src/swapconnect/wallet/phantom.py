"""Phantom deep-link connection flow for Solana.

The dapp and the wallet exchange encrypted payloads through URL redirects:

1. open_session builds a connect link carrying a fresh dapp public key.
2. The connect callback brings the wallet public key and an encrypted
   payload; the transaction is built and a signTransaction link returned.
3. The sign callback brings the signed transaction, which is broadcast.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

from swapconnect.broadcast import BroadcastCapability
from swapconnect.chains import ConnectionFlow
from swapconnect.config import Settings
from swapconnect.errors import (
    InvalidStateTransition,
    InvalidWalletResponse,
    UpstreamError,
    WalletRejected,
)
from swapconnect.routing.base import AggregatorClient, SolanaTransaction
from swapconnect.wallet.handshake import (
    decode_base58,
    decrypt_payload,
    derive_shared_secret,
    encode_base58,
    encrypt_payload,
    generate_keypair,
    public_key_base58,
)
from swapconnect.wallet.orchestrator import SessionOrchestrator
from swapconnect.wallet.session import (
    PhantomState,
    ProtocolState,
    Session,
    SessionHandle,
    SwapIntent,
)
from swapconnect.wallet.store import SessionStore

logger = logging.getLogger(__name__)

PHANTOM_APP_BASE_URL = "https://phantom.com/ul/v1/"
PHANTOM_CLUSTER = "mainnet-beta"
PHANTOM_CONNECT_METHOD = "connect"
PHANTOM_SIGN_TRANSACTION_METHOD = "signTransaction"
CONNECT_CALLBACK_PATH = "/phantom/callback/connect"
SIGN_CALLBACK_PATH = "/phantom/callback/sign"


class PhantomCallback(BaseModel):
    """Query parameters of a Phantom redirect."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    phantom_encryption_public_key: Optional[str] = None
    nonce: Optional[str] = None
    data: Optional[str] = None
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")

    @field_validator("error_code", "error_message", mode="before")
    @classmethod
    def stringify(cls, v):
        return None if v is None else str(v)

    @classmethod
    def from_params(cls, params: Union["PhantomCallback", Mapping[str, Any]]) -> "PhantomCallback":
        if isinstance(params, PhantomCallback):
            return params
        return cls.model_validate(dict(params))

    def raise_if_rejected(self, action: str) -> None:
        """Raise WalletRejected if the wallet reported an error."""
        if not self.error_code and not self.error_message:
            return
        details = ": ".join(part for part in (self.error_code, self.error_message) if part)
        raise WalletRejected(f"{action}: {details}")

    def require(self, key: str) -> str:
        value = getattr(self, key)
        if not value or not value.strip():
            raise InvalidWalletResponse(f"Phantom callback is missing query parameter {key}")
        return value


@dataclass(frozen=True)
class SwapResult:
    transaction_hash: str
    explorer_url: Optional[str] = None


def _require_field(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidWalletResponse(f"Phantom payload field {key} is missing")
    return value


def build_phantom_url(method: str, params: dict[str, str]) -> str:
    return f"{PHANTOM_APP_BASE_URL}{method}?{urlencode(params)}"


class PhantomOrchestrator(SessionOrchestrator):
    """Drives the deep-link handshake, signing and broadcast."""

    flow = ConnectionFlow.DEEP_LINK

    def __init__(
        self,
        store: SessionStore,
        clients: list[AggregatorClient],
        broadcaster: BroadcastCapability,
        notifier=None,
        metrics=None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(store, clients, notifier, metrics, settings)
        self.broadcaster = broadcaster

    def _callback_url(self, path: str, session_id: str) -> str:
        base = self.settings.app_public_url.rstrip("/")
        return f"{base}{path}?{urlencode({'sessionId': session_id})}"

    def _get_session(self, session_id: str) -> Session:
        session = self._require_session(session_id)
        if session.phantom is None:
            raise InvalidStateTransition(f"Session {session_id} is not a Phantom session")
        return session

    async def open_session(self, user_id: str, intent: SwapIntent) -> SessionHandle:
        """Create a session with a fresh dapp key pair and its connect link.

        Raises:
            InvalidSwapRequest: For a non deep-link chain or unknown aggregator
        """
        self._check_chain(intent.chain)
        self._resolve_client(intent)

        session = self._new_session(user_id, intent)
        keypair = generate_keypair()
        dapp_public_key = public_key_base58(keypair)

        session.uri = build_phantom_url(
            PHANTOM_CONNECT_METHOD,
            {
                "dapp_encryption_public_key": dapp_public_key,
                "cluster": PHANTOM_CLUSTER,
                "app_url": self.settings.app_public_url,
                "redirect_link": self._callback_url(CONNECT_CALLBACK_PATH, session.session_id),
            },
        )
        session.phantom = PhantomState(
            dapp_keypair=keypair,
            dapp_public_key=dapp_public_key,
            connect_url=session.uri,
        )
        self.store.save(session)
        self._count("initiated")
        logger.info(f"Phantom session {session.session_id} opened for user {user_id}")

        return session.public()

    def get_connect_deep_link(self, session_id: str) -> str:
        """Get the connect link of a live session.

        Raises:
            SessionNotFoundOrExpired: If the session is gone
        """
        return self._get_session(session_id).phantom.connect_url

    async def handle_connect_callback(
        self,
        session_id: str,
        params: Union[PhantomCallback, Mapping[str, Any]],
    ) -> str:
        """Finish the handshake and return the signTransaction link.

        Any failure marks the session FAILED, notifies the user, deletes
        the session and re-raises. A cancelled call also deletes the session.
        """
        session = self._get_session(session_id)
        user_id = session.user_id
        intent = session.intent

        connected = False
        try:
            callback = PhantomCallback.from_params(params)
            callback.raise_if_rejected("Phantom connection was declined")

            phantom = session.phantom
            if (
                session.protocol_state != ProtocolState.PENDING_APPROVAL
                or phantom.dapp_keypair is None
            ):
                raise InvalidStateTransition(f"Session {session_id} is not awaiting a connection")

            wallet_public_key = callback.require("phantom_encryption_public_key")
            shared_secret = derive_shared_secret(phantom.dapp_keypair, wallet_public_key)
            payload = decrypt_payload(
                callback.require("data"), callback.require("nonce"), shared_secret
            )
            wallet_address = _require_field(payload, "public_key")
            wallet_session = _require_field(payload, "session")

            phantom.shared_secret = shared_secret
            phantom.wallet_encryption_public_key = wallet_public_key
            phantom.wallet_session = wallet_session
            phantom.wallet_address = wallet_address
            session.wallet_address = wallet_address
            session.transition(ProtocolState.APPROVED)
            self.store.save(session)
            logger.info(f"Phantom session {session_id} connected by {wallet_address}")

            client = self._resolve_client(intent)
            transaction = await client.build_swap_transaction(
                intent.to_swap_request(wallet_address)
            )
            raw_transaction = self._decode_transaction(transaction)

            session = self._get_session(session_id)
            encrypted = encrypt_payload(
                {"session": wallet_session, "transaction": encode_base58(raw_transaction)},
                shared_secret,
            )
            session.phantom.last_valid_block_height = transaction.last_valid_block_height
            session.transition(ProtocolState.SIGNING_REQUESTED)
            self.store.save(session)

            url = build_phantom_url(
                PHANTOM_SIGN_TRANSACTION_METHOD,
                {
                    "dapp_encryption_public_key": session.phantom.dapp_public_key,
                    "nonce": encrypted.nonce,
                    "redirect_link": self._callback_url(SIGN_CALLBACK_PATH, session_id),
                    "payload": encrypted.data,
                },
            )
            connected = True
            return url

        except Exception as e:
            await self._fail(session_id, user_id, e)
            raise
        finally:
            if not connected:
                self.store.delete(session_id)

    @staticmethod
    def _decode_transaction(transaction: Any) -> bytes:
        """Check the build result and decode its base64 transaction."""
        if not isinstance(transaction, SolanaTransaction) or not transaction.serialized_transaction:
            raise UpstreamError("Solana swap transaction is missing")
        if not transaction.last_valid_block_height or transaction.last_valid_block_height <= 0:
            raise UpstreamError("Solana lastValidBlockHeight is missing")
        try:
            return base64.b64decode(transaction.serialized_transaction, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UpstreamError("Solana swap transaction is not valid base64") from e

    async def handle_sign_callback(
        self,
        session_id: str,
        params: Union[PhantomCallback, Mapping[str, Any]],
    ) -> SwapResult:
        """Broadcast the wallet-signed transaction.

        The session is deleted whatever the outcome.
        """
        session = self._get_session(session_id)
        user_id = session.user_id
        intent = session.intent

        try:
            callback = PhantomCallback.from_params(params)
            callback.raise_if_rejected("Phantom signing was declined")

            phantom = session.phantom
            if (
                session.protocol_state != ProtocolState.SIGNING_REQUESTED
                or phantom.shared_secret is None
            ):
                raise InvalidStateTransition(f"Session {session_id} is not awaiting a signature")

            payload = decrypt_payload(
                callback.require("data"), callback.require("nonce"), phantom.shared_secret
            )
            signed_transaction = decode_base58(
                _require_field(payload, "transaction"), "transaction"
            )

            transaction_hash = await self.broadcaster.broadcast(
                signed_transaction, phantom.last_valid_block_height
            )
            explorer_url = await self._complete(session_id, user_id, intent, transaction_hash)

            return SwapResult(transaction_hash=transaction_hash, explorer_url=explorer_url)

        except Exception as e:
            await self._fail(session_id, user_id, e)
            raise
        finally:
            self.store.delete(session_id)
