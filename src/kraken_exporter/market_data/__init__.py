"""Ticker models, pair discovery and gauge publishing."""
