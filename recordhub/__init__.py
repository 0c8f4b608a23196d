# recordhub/__init__.py
"""Record management backend: writers, orders, dissertations and invoices."""

__version__ = "0.1.0"
