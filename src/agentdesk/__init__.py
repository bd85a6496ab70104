"""agentdesk - tool-calling conversation orchestrator for builder-configured agents."""

__version__ = "0.1.0"
