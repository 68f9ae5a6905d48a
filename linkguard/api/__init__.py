"""HTTP API for LinkGuard."""
