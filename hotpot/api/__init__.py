"""HTTP API for Hotpot."""
