"""Bearer-token authentication consumed by the progress API."""
