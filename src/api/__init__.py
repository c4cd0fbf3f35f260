"""HTTP API for the scout service."""
