"""agentdesk command line interface."""
