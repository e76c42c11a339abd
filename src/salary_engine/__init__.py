"""Monthly salary calculation engine with an approval ledger."""

__version__ = "0.1.0"
