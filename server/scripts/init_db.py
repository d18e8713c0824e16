"""Create the catalog tables in the configured database."""
import asyncio

from audio_service.core.config import get_settings
from audio_service.core.db import Database
from audio_service.models import AudioRecord  # noqa: F401  registers the table


async def init_db():
    """Create all tables in the database."""
    database = Database(get_settings().database_url)
    try:
        await database.create_all()
    finally:
        await database.dispose()
    print("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
