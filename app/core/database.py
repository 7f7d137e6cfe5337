"""
MongoDB access for request handlers.
"""
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import Settings, get_settings


def create_mongo_client(settings: Settings) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(settings.mongo_url)


def get_database(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AsyncIOMotorDatabase:
    """Dependency returning the database bound to the lifespan client."""
    return request.app.state.mongo_client[settings.mongo_db_name]
