from fastapi import APIRouter

from wadesk.api.routes import (
    assignments,
    auth,
    developer,
    developers,
    system,
    webhooks,
    websocket,
    whatsapp,
)

api = APIRouter(prefix="/api")
api.include_router(auth.router)
api.include_router(developers.router)
api.include_router(assignments.router)
api.include_router(whatsapp.router)
api.include_router(developer.router)
api.include_router(system.router)
api.include_router(webhooks.router)
api.include_router(websocket.router)
