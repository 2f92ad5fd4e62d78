"""
Database connection - MongoDB async (Motor).
"""

import os
from motor.motor_asyncio import AsyncIOMotorClient

mongo_url = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
db_name = os.environ.get('DB_NAME', 'stackhub')

# Async client (used by all app queries); connects lazily on first operation
client = AsyncIOMotorClient(mongo_url)
db = client[db_name]

IMPORT_BATCHES_COLLECTION = "question_import_batches"


def get_database():
    """FastAPI dependency returning the application database handle."""
    return db
