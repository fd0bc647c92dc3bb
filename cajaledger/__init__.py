"""CajaLedger: club savings and internal lending ledger."""

__version__ = "1.0.0"
