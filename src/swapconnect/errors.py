"""Error taxonomy for quoting and wallet sessions.

Every error kind carries a distinct user-facing message. Anything that is
not a SwapConnectError collapses to a generic internal error so stack traces
and secret material never reach the user.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal error. Please try again later."


class SwapConnectError(Exception):
    """Base class for all expected failures."""

    user_message = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class UpstreamError(SwapConnectError):
    """Aggregator transport failure, bad status or schema mismatch."""

    user_message = "The quote provider returned an error."


class UpstreamTimeout(UpstreamError):
    """Aggregator call exceeded its deadline."""

    user_message = "The quote provider did not respond in time."


class NoAggregatorsForChain(SwapConnectError):
    """No configured aggregator supports the requested chain."""

    user_message = "No quote providers are available for this network."

    def __init__(self, chain: str):
        self.chain = chain
        super().__init__(f"No aggregators configured for chain {chain}")


class AllAggregatorsFailed(SwapConnectError):
    """Every aggregator polled for a quote failed."""

    user_message = "Could not get a quote from any provider. Please try again later."

    def __init__(self, errors: Optional[dict[str, str]] = None):
        self.errors = errors or {}
        details = "; ".join(f"{name}: {error}" for name, error in self.errors.items())
        super().__init__(
            f"Failed to get quotes from all aggregators ({details})"
            if details
            else "Failed to get quotes from all aggregators"
        )


class SessionNotFoundOrExpired(SwapConnectError):
    user_message = "The swap session was not found or has expired. Start a new swap."

    def __init__(self, session_id: str = ""):
        self.session_id = session_id
        super().__init__("Swap session is not found or expired")


class WalletRejected(SwapConnectError):
    """The user explicitly declined the request in their wallet."""

    user_message = "The request was declined in the wallet."


class DecryptionFailed(SwapConnectError):
    """Wallet payload failed authentication."""

    user_message = "The wallet response could not be verified."


class ApprovalTimeout(SwapConnectError):
    user_message = "The wallet connection was not approved in time."


class SigningTimeout(SwapConnectError):
    user_message = "The transaction was not signed in time."


class InvalidWalletResponse(SwapConnectError):
    """Wallet answered with a shape we do not understand."""

    user_message = "The wallet returned an unexpected response."


class BroadcastRejected(SwapConnectError):
    """The network refused the signed transaction."""

    user_message = "The network rejected the transaction. It may have expired."


class InvalidStateTransition(SwapConnectError):
    """A session state change would move backwards or leave a terminal state."""

    user_message = "The swap session is no longer active."


class InvalidSwapRequest(SwapConnectError):
    """Bad amount, unknown token, unsupported chain or aggregator."""

    user_message = "The swap request is invalid."

    def __init__(self, message: str):
        # Shown to the user as-is
        self.user_message = message
        super().__init__(message)


class ConfigurationError(SwapConnectError):
    user_message = "Swaps are temporarily unavailable."


def user_message(error: BaseException) -> str:
    """Map an error to the message shown to the user."""
    if isinstance(error, SwapConnectError):
        return error.user_message

    logger.error(f"Unexpected error: {type(error).__name__}: {error}")
    return INTERNAL_ERROR_MESSAGE
