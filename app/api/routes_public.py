"""
Public API routes - no authentication required
"""

from fastapi import APIRouter

from app.services.document_store import use_firestore

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "store": "firestore" if use_firestore() else "sql",
    }
