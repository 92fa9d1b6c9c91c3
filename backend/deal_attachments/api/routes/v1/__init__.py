"""API v1 router aggregation."""

from fastapi import APIRouter

from deal_attachments.api.routes.v1 import attachments

v1_router = APIRouter()

# Deal attachment routes
v1_router.include_router(attachments.router, prefix="/attachments", tags=["attachments"])
