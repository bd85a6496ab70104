"""Simulated alternate orchestration strategies."""
