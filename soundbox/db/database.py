from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from ..config import DATABASE_URL

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # request handlers run in a threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def create_tables(bind=None):
    # device_heartbeat is deliberately absent: its shape is owned elsewhere
    try:
        from .models.store import Store
        from .models.transaction import Transaction

        logger.info(f"tables: {list(Base.metadata.tables.keys())}")

        Base.metadata.create_all(bind=bind or engine)
        logger.info("Tables created successfully!")

    except Exception as e:
        logger.error(f"Error creating tables: {e}")
        raise
