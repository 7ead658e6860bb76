"""
Document model for the SQL-backed document store
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON

from app.core.db import Base

class Document(Base):
    __tablename__ = "documents"

    collection = Column(String(100), primary_key=True)
    doc_id = Column(String(255), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    # Bumped on every write; UPDATE/DELETE match on the version that was read
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}
