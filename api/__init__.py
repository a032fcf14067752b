"""Flask HTTP API for insight generation."""
