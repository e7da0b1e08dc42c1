"""HTTP API (admin endpoints for scanning and catalog maintenance)."""
