import logging

import motor.motor_asyncio

from campusvote.config import MONGO_DB, MONGO_URI

logger = logging.getLogger(__name__)


def create_client(uri: str = MONGO_URI) -> motor.motor_asyncio.AsyncIOMotorClient:
    # tz_aware so vote timestamps and position windows come back as UTC datetimes
    return motor.motor_asyncio.AsyncIOMotorClient(uri, tz_aware=True)


def get_database(client, name: str = MONGO_DB):
    logger.info(f"Using MongoDB database: {name}")
    return client[name]
