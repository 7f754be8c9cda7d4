"""Authentication backends."""
