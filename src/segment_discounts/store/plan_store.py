"""
Plan Store - persistence for discount plans and their rules.

Reads return plain DiscountPlan dataclasses so nothing outside this module
holds an ORM session. Write-time validation lives in PlanService.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import selectinload, sessionmaker

from ..engine.models import DiscountPlan, Rule, SEGMENT_TARGET
from .db import get_session_factory
from .schema import (
    CustomerRecord,
    CustomerSegmentRecord,
    DiscountPlanRecord,
    RuleRecord,
    SegmentRecord,
)

logger = logging.getLogger(__name__)


def _to_plan(record: DiscountPlanRecord) -> DiscountPlan:
    return DiscountPlan(
        id=record.id,
        name=record.name,
        target_type=record.target_type,
        target_key=record.target_key,
        rules=[
            Rule(
                id=rule.id,
                category_id=rule.category_id,
                percent_off=rule.percent_off,
                discount_plan_id=record.id,
            )
            for rule in record.rules
        ],
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_rule_records(rules: Iterable[Rule]) -> list[RuleRecord]:
    return [
        RuleRecord(category_id=str(rule.category_id), percent_off=float(rule.percent_off), position=i)
        for i, rule in enumerate(rules)
    ]


class PlanStore:
    """SQLAlchemy-backed store of DiscountPlan/Rule records."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or get_session_factory()

    def _plans_query(self, session):
        return (
            session.query(DiscountPlanRecord)
            .options(selectinload(DiscountPlanRecord.rules))
            .order_by(DiscountPlanRecord.created_at, DiscountPlanRecord.id)
        )

    # Reads

    def find_segment_plans(self, target_keys: list[str]) -> list[DiscountPlan]:
        """Segment-targeted plans whose target key is one of the given keys, oldest first."""
        if not target_keys:
            return []
        with self.session_factory() as session:
            records = self._plans_query(session).filter(
                DiscountPlanRecord.target_type == SEGMENT_TARGET,
                DiscountPlanRecord.target_key.in_(target_keys),
            ).all()
            return [_to_plan(r) for r in records]

    def list_plans(self, target_type: Optional[str] = None) -> list[DiscountPlan]:
        with self.session_factory() as session:
            query = self._plans_query(session)
            if target_type:
                query = query.filter(DiscountPlanRecord.target_type == target_type)
            return [_to_plan(r) for r in query.all()]

    def get_plan(self, plan_id: str) -> Optional[DiscountPlan]:
        with self.session_factory() as session:
            record = self._plans_query(session).filter(DiscountPlanRecord.id == plan_id).first()
            return _to_plan(record) if record else None

    def find_plan_by_target(self, target_type: str, target_key: str) -> Optional[DiscountPlan]:
        with self.session_factory() as session:
            record = self._plans_query(session).filter(
                DiscountPlanRecord.target_type == target_type,
                DiscountPlanRecord.target_key == target_key,
            ).first()
            return _to_plan(record) if record else None

    def segment_target_keys(self) -> list[str]:
        """Distinct target keys of segment plans, in plan creation order."""
        keys = []
        for plan in self.list_plans(SEGMENT_TARGET):
            if plan.target_key not in keys:
                keys.append(plan.target_key)
        return keys

    def count_plans(self) -> int:
        with self.session_factory() as session:
            return session.query(DiscountPlanRecord).count()

    # Writes

    def add_plan(self, plan: DiscountPlan) -> DiscountPlan:
        with self.session_factory() as session:
            record = DiscountPlanRecord(
                name=plan.name,
                target_type=plan.target_type,
                target_key=plan.target_key,
                rules=_to_rule_records(plan.rules),
            )
            if plan.id:
                record.id = plan.id
            if plan.created_at:
                record.created_at = plan.created_at
            session.add(record)
            session.commit()
            logger.info("Created plan %s (%s=%s)", record.id, record.target_type, record.target_key)
            return _to_plan(self._plans_query(session).filter(DiscountPlanRecord.id == record.id).one())

    def replace_plan(self, plan: DiscountPlan) -> Optional[DiscountPlan]:
        """Overwrite a plan's fields and rules; None if it does not exist."""
        with self.session_factory() as session:
            record = session.get(DiscountPlanRecord, plan.id)
            if record is None:
                return None
            record.name = plan.name
            record.target_type = plan.target_type
            record.target_key = plan.target_key
            record.rules = _to_rule_records(plan.rules)
            session.commit()
            return _to_plan(self._plans_query(session).filter(DiscountPlanRecord.id == plan.id).one())

    def delete_plan(self, plan_id: str) -> bool:
        with self.session_factory() as session:
            record = session.get(DiscountPlanRecord, plan_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            logger.info("Deleted plan %s", plan_id)
            return True

    # Offline customer/segment seeding

    def record_customer_segments(self, customer_id: str, email: Optional[str], segment_ids: list[str]):
        """Upsert a customer and link it to the given segments."""
        with self.session_factory() as session:
            session.merge(CustomerRecord(id=customer_id, email=email))
            for segment_id in segment_ids:
                session.merge(SegmentRecord(id=segment_id))
                session.merge(CustomerSegmentRecord(customer_id=customer_id, segment_id=segment_id))
            session.commit()

    def list_seeded_segments(self) -> list[str]:
        with self.session_factory() as session:
            return [row.id for row in session.query(SegmentRecord).order_by(SegmentRecord.id)]
