"""Domain model and turn orchestration."""
