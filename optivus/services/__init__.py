"""
Business logic services.

Services own the transaction boundary: they lock, mutate through the
ledger, commit, and raise OptivusError subclasses on rule violations.
"""
