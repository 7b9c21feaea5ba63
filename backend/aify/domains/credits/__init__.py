"""Credits domain: the ledger service that owns account balances.

Use Inject(CreditLedgerProtocol) in endpoints and services.
"""
