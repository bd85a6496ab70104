"""HTTP request/response schemas."""
