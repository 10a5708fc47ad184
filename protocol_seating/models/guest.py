"""
Guest model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from protocol_seating.core.db import Base

class Guest(Base):
    __tablename__ = "guests"

    id = Column(String(64), primary_key=True, index=True)
    event_id = Column(String(64), ForeignKey("events.id"), nullable=False, index=True)
    position_order = Column(Integer, nullable=False, default=0)  # preserves import/insertion order
    name = Column(String(255), nullable=False)
    organization = Column(String(255), nullable=False, default="")
    position = Column(String(255), nullable=False, default="")
    guest_type = Column(String(20), nullable=False, default="regular")  # vip, regular, staff, press
    status = Column(String(20), nullable=False, default="not_arrived")  # arrived, not_arrived, cancelled
    seat_number = Column(String(50), nullable=True)  # raw identifier, e.g. "A-1"
    biography = Column(Text, nullable=True)
    protocol_notes = Column(Text, default="")  # "|"-joined tags
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="guests")
