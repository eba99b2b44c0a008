"""Order lifecycle and payment reconciliation for the car rental backend."""

__version__ = "0.1.0"
