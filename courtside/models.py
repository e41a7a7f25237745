"""
Database models for the persistent cache tier
SQLAlchemy ORM model for serialized cache records
"""
from sqlalchemy import Column, Float, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheRecord(Base):
    """
    One cached payload, keyed like the in-memory cache
    (e.g. "espn:scoreboard:20240115", "reddit:index").
    """
    __tablename__ = "cache_records"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)         # JSON document
    content_hash = Column(String(64), nullable=False)
    written_at = Column(Float, nullable=False, index=True)   # epoch seconds
    ttl_seconds = Column(Float, nullable=False)

    def __repr__(self):
        return f"<CacheRecord(key='{self.key}', written_at={self.written_at})>"
