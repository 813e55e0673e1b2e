"""FastAPI application and REST API endpoints.

This module contains:
- Main FastAPI application configuration
- Bearer token authentication
- Mapping of service errors onto HTTP responses
- Team, invitation, OKR and review endpoints
"""
