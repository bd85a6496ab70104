"""Protocols for external collaborators consumed by the core."""
