"""Business data store models."""
