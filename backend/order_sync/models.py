from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, String, Text, DateTime, func
Base = declarative_base()

class KeyValueEntry(Base):
    __tablename__ = "kv_entries"
    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
