"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter, Depends

from planorama.api.routes import auth, email, email_templates, events, rsvps, tokens
from planorama.services.rate_limit_service import api_rate_limiter

api_router = APIRouter(prefix="/api/v1", dependencies=[Depends(api_rate_limiter)])
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(rsvps.router)
api_router.include_router(tokens.router)
api_router.include_router(email_templates.router)
api_router.include_router(email.router)
