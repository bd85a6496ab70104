"""Application services: settings, wiring, execution."""
