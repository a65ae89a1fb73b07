"""Application services built on the routing and wallet layers."""

from swapconnect.services.quote_service import QuoteService
from swapconnect.services.swap_service import SwapService

__all__ = ["QuoteService", "SwapService"]
