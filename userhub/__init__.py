"""User management and authentication service."""
