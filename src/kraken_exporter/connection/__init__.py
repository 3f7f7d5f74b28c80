"""Upstream HTTP access for the Kraken public REST API."""
