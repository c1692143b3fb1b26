from sqlalchemy import Column, String, DateTime, Date, Text, Integer, JSON
from sqlalchemy.orm import declarative_base
import uuid
from datetime import datetime

Base = declarative_base()

class Trip(Base):
    __tablename__ = "trips"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    share_id = Column(String(32), unique=True, nullable=False, index=True)

    # User-facing content (always human readable, never a bare URL)
    trip_description = Column(Text, nullable=False)
    source_url = Column(Text, nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    emergency_contact = Column(Text, nullable=True)

    # Derived / generated bundles
    trip_data = Column(JSON, nullable=False, default=dict)
    safety_info = Column(JSON, nullable=True)
    ai_response_log = Column(JSON, nullable=True)

    view_count = Column(Integer, nullable=False, default=0)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
