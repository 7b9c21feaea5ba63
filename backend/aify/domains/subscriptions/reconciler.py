"""Subscription reconciler for Stripe billing webhooks.

Verifies each delivery, normalizes it into a ``BillingEvent`` and applies
the resulting transition under the same account lock the credit ledger
uses. Deliveries are at-least-once and may arrive out of order: transitions
are computed from the event payload alone, and events older than the newest
one already applied are skipped when stale rejection is enabled.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.logging import ContextualLogger, logger
from aify.core.protocols import BillingMetrics, PaymentGatewayProtocol
from aify.core.shared_models import AccountTier, AuthMethod, LedgerEntryKind
from aify.domains.accounts.repository import AccountRepositoryProtocol
from aify.domains.credits.ledger import make_entry
from aify.domains.credits.protocols import CreditLedgerProtocol
from aify.domains.credits.repository import LedgerEntryRepositoryProtocol
from aify.domains.subscriptions.exceptions import UnverifiedEventError, wrap_gateway_errors
from aify.domains.subscriptions.protocols import SubscriptionReconcilerProtocol
from aify.domains.subscriptions.transitions import apply_billing_event
from aify.domains.subscriptions.types import AccountState, BillingEvent, BillingEventKind
from aify.models import Account

Handler = Callable[[AsyncSession, BillingEvent, ContextualLogger], Awaitable[str]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionReconciler(SubscriptionReconcilerProtocol):
    """Process Stripe webhook events into account tier/status/balance changes."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        account_repo: AccountRepositoryProtocol,
        entry_repo: LedgerEntryRepositoryProtocol,
        ledger: CreditLedgerProtocol,
        metrics: BillingMetrics,
        free_tier_grant: int = 3,
        reject_stale_events: bool = True,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize with all required dependencies."""
        self._payment_gateway = payment_gateway
        self._account_repo = account_repo
        self._entry_repo = entry_repo
        self._ledger = ledger
        self._metrics = metrics
        self._free_tier_grant = free_tier_grant
        self._reject_stale_events = reject_stale_events
        self._clock = clock

        # Event handler mapping
        self.handlers: dict[BillingEventKind, Handler] = {
            BillingEventKind.ACTIVATED: self._handle_transition,
            BillingEventKind.UPDATED: self._handle_transition,
            BillingEventKind.DELETED: self._handle_transition,
            BillingEventKind.PAYMENT_FAILED: self._handle_transition,
            BillingEventKind.TOPUP: self._handle_top_up,
            BillingEventKind.PAYMENT_SUCCEEDED: self._handle_informational,
            BillingEventKind.INFORMATIONAL: self._handle_informational,
        }

    @wrap_gateway_errors
    async def process_webhook(self, db: AsyncSession, payload: bytes, signature: str) -> None:
        """Verify webhook signature and process the resulting event.

        Raises UnverifiedEventError (a ValueError) if the signature is invalid.
        """
        try:
            event = self._payment_gateway.verify_webhook_signature(payload, signature)
        except ValueError as e:
            logger.with_context(auth_method=AuthMethod.STRIPE_WEBHOOK.value).warning(
                f"Rejected billing webhook: {e}"
            )
            self._metrics.inc_webhook_event("unverified", "rejected")
            raise UnverifiedEventError(str(e)) from e

        await self.process_event(db, event)

    async def process_event(self, db: AsyncSession, event: object) -> str:
        """Process a verified Stripe event and return its outcome label."""
        billing_event = BillingEvent.from_stripe(
            event, self._payment_gateway.get_price_id_mapping()
        )
        log = logger.with_context(
            auth_method=AuthMethod.STRIPE_WEBHOOK.value,
            event_type=billing_event.type,
            stripe_event_id=billing_event.id,
        )

        handler = self.handlers.get(billing_event.kind)
        if handler is None:
            log.info(f"Unhandled webhook event type: {billing_event.type}")
            outcome = "ignored"
        else:
            try:
                log.info(f"Processing webhook event: {billing_event.type}")
                outcome = await handler(db, billing_event, log)
            except Exception as e:
                log.error(f"Error handling {billing_event.type}: {e}", exc_info=True)
                self._metrics.inc_webhook_event(billing_event.type, "failed")
                raise

        self._metrics.inc_webhook_event(billing_event.type, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Account resolution
    # ------------------------------------------------------------------

    async def _resolve_account(self, db: AsyncSession, event: BillingEvent) -> Optional[Account]:
        """Find the target account: metadata id, then subscription id, then customer id."""
        if event.account_id:
            account = await self._account_repo.get(db, account_id=event.account_id)
            if account:
                return account
        if event.subscription_id:
            account = await self._account_repo.get_by_stripe_subscription_id(
                db, stripe_subscription_id=event.subscription_id
            )
            if account:
                return account
        if event.customer_id:
            return await self._account_repo.get_by_stripe_customer_id(
                db, stripe_customer_id=event.customer_id
            )
        return None

    def _is_stale(self, account: Account, event: BillingEvent) -> bool:
        if not self._reject_stale_events or event.created is None:
            return False
        last = account.last_billing_event_at
        if last is None:
            return False
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return event.created < last

    async def _grant_recorded(
        self, db: AsyncSession, account: Account, event: BillingEvent
    ) -> bool:
        entry = await self._entry_repo.get_by_related_resource_ref(
            db,
            account_id=account.id,
            kind=LedgerEntryKind.ROLLOVER_GRANT.value,
            related_resource_ref=event.id,
        )
        return entry is not None

    @staticmethod
    def _advances_marker(account: Account, event: BillingEvent) -> bool:
        last = account.last_billing_event_at
        if last is None:
            return True
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return event.created > last

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _handle_transition(
        self, db: AsyncSession, event: BillingEvent, log: ContextualLogger
    ) -> str:
        """Apply a subscription lifecycle event under the account lock."""
        account = await self._resolve_account(db, event)
        if account is None:
            log.warning(
                f"No account for billing event (customer={event.customer_id}, "
                f"subscription={event.subscription_id})"
            )
            return "unresolved"

        log = log.with_context(account_id=str(account.id))
        if event.kind is BillingEventKind.ACTIVATED and event.tier is None:
            log.warning("Activation event carries no tier, keeping the current one")

        async with self._account_repo.locked(db, account.id) as locked:
            if self._is_stale(locked, event):
                log.info(
                    f"Skipping stale event created {event.created.isoformat()}, "
                    f"newest applied is {locked.last_billing_event_at.isoformat()}"
                )
                return "stale"

            before = AccountState.from_model(locked)
            after = apply_billing_event(before, event, self._free_tier_grant)
            if after.balance != before.balance and await self._grant_recorded(db, locked, event):
                # Redelivered event: the grant was already paid out, keep spending since then.
                log.info("Free tier grant for this event already recorded, keeping balance")
                after = after.evolve(
                    balance=before.balance, used_this_period=before.used_this_period
                )

            if event.created is not None and self._advances_marker(locked, event):
                locked.last_billing_event_at = event.created

            if after == before:
                log.info("Billing event changes nothing, already applied")
                return "ignored"

            after.apply_to(locked)
            downgraded = before.tier.is_paid and after.tier is AccountTier.FREE
            if after.balance != before.balance or downgraded:
                locked.last_rollover_at = self._clock()
            if after.balance != before.balance:
                await self._entry_repo.add(
                    db,
                    entry=make_entry(
                        locked,
                        LedgerEntryKind.ROLLOVER_GRANT,
                        after.balance - before.balance,
                        f"Free tier grant after {event.type} ({self._free_tier_grant} credits)",
                        related_resource_ref=event.id,
                    ),
                )

        log.info(
            f"Account moved from {before.status.value}/{before.tier.value} "
            f"to {after.status.value}/{after.tier.value}"
        )
        if after.balance != before.balance:
            self._metrics.inc_ledger_operation(LedgerEntryKind.ROLLOVER_GRANT.value)
        return "applied"

    async def _handle_top_up(
        self, db: AsyncSession, event: BillingEvent, log: ContextualLogger
    ) -> str:
        """Credit purchased credits, idempotent on the payment reference."""
        account = await self._resolve_account(db, event)
        if account is None:
            log.warning(f"No account for top-up checkout (customer={event.customer_id})")
            return "unresolved"

        await self._ledger.top_up(
            db,
            account.id,
            event.credits,
            f"Purchased {event.credits} credits",
            external_payment_ref=event.payment_ref,
        )
        return "applied"

    async def _handle_informational(
        self, db: AsyncSession, event: BillingEvent, log: ContextualLogger
    ) -> str:
        """Log events that carry no state change."""
        log.info(f"Informational billing event for customer {event.customer_id}, no state change")
        return "ignored"
