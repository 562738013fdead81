"""HTTP API for caption sessions."""
