"""Core services: conversation driver, guard rails, classification."""
