"""Request/response schemas and value objects."""
