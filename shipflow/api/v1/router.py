from fastapi import APIRouter

from shipflow.api.routers import entities, notifications, subscriptions

api_router = APIRouter()

api_router.include_router(notifications.router)
api_router.include_router(subscriptions.router)
api_router.include_router(subscriptions.clients_router)
# Generic /{collection}/... routes last so fixed prefixes win.
api_router.include_router(entities.router)
