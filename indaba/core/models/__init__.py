"""
Data models shared across the application.

- io/: Pydantic request and response schemas used by the API layer
"""
