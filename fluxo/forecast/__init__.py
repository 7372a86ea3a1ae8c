"""Forecast module - handles cash flow projection calculations."""
from fluxo.forecast import engine, events, expansion, metrics, normalizer, provisioned, schemas

__all__ = ["engine", "events", "expansion", "metrics", "normalizer", "provisioned", "schemas"]
