"""First-line customer support agent with guard rails and escalation routing."""

__version__ = "0.1.0"
