"""API v1 router aggregating all endpoint routers.

All endpoints are mounted under the ``api.v1_prefix`` configuration
(``/api/v1`` by default).
"""

from __future__ import annotations

from fastapi import APIRouter

from account_service.api.v1.endpoints import auth, health, oauth, users


router = APIRouter()

router.include_router(health.router)
router.include_router(auth.router)
router.include_router(oauth.router)
router.include_router(users.router)
