"""HTTP API for Similar References."""
