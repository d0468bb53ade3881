"""Data models for the support agent."""
