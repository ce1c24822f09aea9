"""Database package for the Parley CRM data layer."""
from db.connection import AsyncSessionLocal, dispose_engine, engine, get_db

__all__ = ["engine", "AsyncSessionLocal", "get_db", "dispose_engine"]
