from fastapi import APIRouter

from webradio.api.v1.exports import router as exports_router
from webradio.api.v1.player_apps import router as player_apps_router

router = APIRouter()
router.include_router(exports_router)
router.include_router(player_apps_router)
