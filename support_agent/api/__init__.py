"""HTTP API for the support agent."""
