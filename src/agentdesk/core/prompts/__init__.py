"""Prompt constants."""
