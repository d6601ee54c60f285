import asyncio
from shared.db import engine, Base

import services.class_management.models
import services.scheduling.models

async def reset_db():
    async with engine.begin() as conn:
        print("🗑️ Dropping tables...")
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
        print("✅ Tables recreated.")

if __name__ == "__main__":
    asyncio.run(reset_db())
