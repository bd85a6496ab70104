"""Core layer: domain logic and collaborator protocols."""
