"""HTTP clients for remote vbagen services."""
