"""
Models package

- models.domain: persisted ledger rows and queue job codec
"""
