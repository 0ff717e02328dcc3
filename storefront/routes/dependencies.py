"""Shared route dependencies"""

from fastapi import Depends, HTTPException, Request

from ..core.config import Settings
from ..core.exceptions import SessionNotFound
from ..core.session import CartSession, CartSessionManager
from ..database.products import ProductCatalog


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_sessions(request: Request) -> CartSessionManager:
    return request.app.state.sessions


def get_catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


async def get_cart_session(
    session_id: str,
    sessions: CartSessionManager = Depends(get_sessions),
) -> CartSession:
    """Resolve the session named in the path"""
    try:
        return sessions.get_session(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Cart session not found")
