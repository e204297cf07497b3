"""HTTP API package, organised by version."""
