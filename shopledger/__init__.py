"""Financial reconciliation and reporting engine for the workshop back office."""

__version__ = "0.1.0"
