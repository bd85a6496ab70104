"""Delivery surfaces: HTTP API and CLI."""
