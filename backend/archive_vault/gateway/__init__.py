"""
API Gateway Module

Centralized gateway layer for the API:
- Middleware management (request ids, logging, error handling, CORS)
- Router registration
- Health endpoint

The gateway acts as the single entry point for all API requests.
"""
from .gateway import APIGateway

__all__ = ["APIGateway"]
