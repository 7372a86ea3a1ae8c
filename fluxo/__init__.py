"""Fluxo - cash-flow projection and scenario simulation engine."""

__version__ = "0.1.0"
