from fastapi import APIRouter

from papervault.api.v1.endpoints import upload as upload_endpoints

api_router = APIRouter()

# Upload, moderation and public listing all live under /upload.
api_router.include_router(upload_endpoints.router, prefix="/upload", tags=["Papers"])
