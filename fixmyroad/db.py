import logging
from typing import Tuple

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from fixmyroad.config import Settings
from fixmyroad.errors import StartupError

logger = logging.getLogger(__name__)


async def connect(settings: Settings) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    """
    Connect to MongoDB and verify the connection with a ping.
    Raises StartupError when the URI is missing or the server is unreachable.
    """
    if not settings.mongodb_uri:
        raise StartupError("Missing MONGODB_URI in environment or .env")

    kwargs = {"tz_aware": True}
    # Atlas SRV URIs use TLS; point the driver at certifi's CA bundle
    if settings.mongodb_uri.startswith("mongodb+srv://"):
        kwargs["tlsCAFile"] = certifi.where()

    client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
    db = client[settings.db_name]
    try:
        await db.command("ping")
    except PyMongoError as e:
        client.close()
        raise StartupError(f"MongoDB connection failed: {e}") from e

    logger.info("Connected to MongoDB database %r", settings.db_name)
    return client, db


def close(client: AsyncIOMotorClient) -> None:
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
