"""Accounts domain: row-locked account access and lazy provisioning.

Use Inject(AccountRepositoryProtocol) for the singleton repository and
Inject(AccountProvisionerProtocol) to resolve the caller's account.
"""
