"""HTTP adapter exposing the rate limiting engine."""
