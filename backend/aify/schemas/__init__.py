"""Schemas for the application."""

from .account import Account, AccountCreate, Principal
from .design import (
    DesignGenerateRequest,
    DesignGenerateResponse,
    GeneratedImage,
    GenerationRequest,
)
from .ledger import BalanceResponse, CreditHistoryResponse, LedgerEntry
from .subscription import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionRequest,
    PortalSessionResponse,
    PricingResponse,
    PricingTier,
    SubscriptionActionResponse,
    SubscriptionInfo,
    TopUpCheckoutRequest,
)
