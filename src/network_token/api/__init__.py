"""HTTP API layer for Network Token Service."""
