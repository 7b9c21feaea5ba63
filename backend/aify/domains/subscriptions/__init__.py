"""Subscriptions domain: billing webhook reconciliation and checkout flows."""
