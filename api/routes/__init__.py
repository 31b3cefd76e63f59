"""
API Routes Package

This module consolidates all API routes for the Zoho Payments gateway.
"""

from fastapi import APIRouter

from . import admin
from . import orders
from . import payments

# Create main router
router = APIRouter()

router.include_router(orders.router, prefix="/orders", tags=["orders"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])

__all__ = ["router"]
