"""Designs domain: generation orchestration around the credit ledger."""
