"""Dealflow — matching and deal-formation engine for a B2B services marketplace."""

__version__ = "0.1.0"
