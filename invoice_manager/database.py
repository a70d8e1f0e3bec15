# database.py
"""Database configuration and session management."""

import os
import logging
from sqlalchemy import create_engine, NullPool, StaticPool
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from the .env file
load_dotenv()

# Get database URL from environment
DATABASE_URL = os.getenv('DATABASE_URL')
if not DATABASE_URL:
    raise RuntimeError(
        "DATABASE_URL environment variable is not set. "
        "Please set it in your .env file or environment."
    )

logger.info("Connecting to database...")

# Create the SQLAlchemy engine
if DATABASE_URL.startswith("sqlite"):
    # Local runs and tests: one shared connection so in-memory databases survive
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(DATABASE_URL, client_encoding='utf8', poolclass=NullPool)

# Create a configured "SessionLocal" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()
