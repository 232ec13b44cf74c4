"""
Access to the process-wide HarvestService built in the app lifespan.
"""

from fastapi import Request

from jobharvest.service import HarvestService


def get_service(request: Request) -> HarvestService:
    """FastAPI dependency returning the app's HarvestService."""
    return request.app.state.service
