from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
from revvio.database import Base


class ReviewRequestType(str, enum.Enum):
    SMS = "sms"
    EMAIL = "email"


class ReviewRequestStatus(str, enum.Enum):
    """Lifecycle: pending -> sent -> clicked -> reviewed, or failed."""

    PENDING = "pending"
    SENT = "sent"
    CLICKED = "clicked"
    REVIEWED = "reviewed"
    FAILED = "failed"


class ReviewRequest(Base):
    __tablename__ = "review_requests"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=ReviewRequestStatus.PENDING.value, server_default="pending")
    tracking_token = Column(String(255), unique=True, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    clicked_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    business_profile = relationship("BusinessProfile", back_populates="review_requests")
    customer = relationship("Customer", back_populates="review_requests")
