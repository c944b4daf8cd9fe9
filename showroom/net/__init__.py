"""HTTP primitives: URL building, error model, request service."""
