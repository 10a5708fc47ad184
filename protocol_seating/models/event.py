"""
Event model
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship

from protocol_seating.core.db import Base

class Event(Base):
    __tablename__ = "events"

    id = Column(String(64), primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(DateTime, nullable=False)
    location = Column(String(255), nullable=False, default="")
    description = Column(Text, default="")
    status = Column(String(20), nullable=False, default="upcoming")  # upcoming, ongoing, completed
    seat_layout = Column(Text, nullable=True)  # JSON: {"rows", "cols", "row_labels"}
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    guests = relationship("Guest", back_populates="event", cascade="all, delete-orphan")
