"""
HTTP boundary for the culture-connect service.

Contains:
- app: FastAPI application factory and service wiring
- models: request / response schemas
- server: uvicorn entry point
"""

from src.api.app import ServiceContainer, build_services, create_app

__all__ = ["ServiceContainer", "build_services", "create_app"]
