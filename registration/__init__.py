"""Account registration and login service."""
