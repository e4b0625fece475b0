# System API Routers
from app.system.routers import navigation_router, audit_router

__all__ = ['navigation_router', 'audit_router']
