"""Pure billing state machine.

``apply_billing_event`` maps (current state, event) to the next state using
only the event's own payload, so applying the same event once or many times
gives the same result. It never reads the clock or the database.
"""

from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.domains.subscriptions.types import (
    PAID_STATUSES,
    TERMINAL_STATUSES,
    AccountState,
    BillingEvent,
    BillingEventKind,
)


def _downgrade_to_free(state: AccountState, grant: int) -> AccountState:
    return state.evolve(
        tier=AccountTier.FREE,
        status=SubscriptionStatus.CANCELLED,
        balance=grant,
        used_this_period=0,
    )


def _activate(state: AccountState, event: BillingEvent) -> AccountState:
    return state.evolve(
        tier=event.tier or state.tier,
        status=SubscriptionStatus.ACTIVE,
        stripe_customer_id=event.customer_id or state.stripe_customer_id,
        stripe_subscription_id=event.subscription_id or state.stripe_subscription_id,
        period_end=event.period_end or state.period_end,
    )


def apply_billing_event(state: AccountState, event: BillingEvent, grant: int) -> AccountState:
    """Return the account state after ``event``.

    Args:
        state: Current billing state of the account.
        event: Verified, normalized billing event.
        grant: Free-tier credit grant applied on downgrade.

    Returns:
        The new state. Events that carry no transition return ``state`` itself.
    """
    if event.kind is BillingEventKind.ACTIVATED:
        return _activate(state, event)

    if event.kind is BillingEventKind.UPDATED:
        if event.status in TERMINAL_STATUSES:
            return _downgrade_to_free(state, grant).evolve(
                period_end=event.period_end or state.period_end
            )
        if event.status == "past_due":
            return state.evolve(status=SubscriptionStatus.PAST_DUE)
        if event.status in PAID_STATUSES:
            return _activate(state, event)
        return state

    if event.kind is BillingEventKind.DELETED:
        return _downgrade_to_free(state, grant).evolve(
            stripe_subscription_id=None,
            period_end=None,
        )

    if event.kind is BillingEventKind.PAYMENT_FAILED:
        return state.evolve(status=SubscriptionStatus.PAST_DUE)

    return state
