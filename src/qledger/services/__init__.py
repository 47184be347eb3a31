"""Ledger services: fees, transactions, portfolio derivation, storage and quotes."""
