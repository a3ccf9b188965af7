import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DiscountPlanRecord(Base):
    __tablename__ = 'discount_plans'
    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    target_type = Column(String, nullable=False)
    target_key = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    rules = relationship(
        "RuleRecord",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="RuleRecord.position",
    )


class RuleRecord(Base):
    __tablename__ = 'rules'
    id = Column(String, primary_key=True, default=_new_id)
    category_id = Column(String, nullable=False)
    percent_off = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    discount_plan_id = Column(
        String, ForeignKey('discount_plans.id', ondelete='CASCADE'), nullable=False
    )

    plan = relationship("DiscountPlanRecord", back_populates="rules")


class CustomerRecord(Base):
    __tablename__ = 'customers'
    id = Column(String, primary_key=True)
    email = Column(String)


class SegmentRecord(Base):
    __tablename__ = 'segments'
    id = Column(String, primary_key=True)


class CustomerSegmentRecord(Base):
    __tablename__ = 'customer_segments'
    customer_id = Column(String, ForeignKey('customers.id'), primary_key=True)
    segment_id = Column(String, ForeignKey('segments.id'), primary_key=True)
