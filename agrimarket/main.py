# agrimarket/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from agrimarket.api import create_app
from agrimarket.data.database import Base, engine
from agrimarket.utils.logging import get_logger

# import all models before create_all
import agrimarket.data.models  # noqa: F401

logger = get_logger(__name__)


def init_db():
    logger.info(f"Initializing database, tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info("Database tables created")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = create_app(lifespan=lifespan)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
