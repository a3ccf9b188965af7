"""
Plans API - FastAPI router for discount plan management.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..engine.models import DiscountPlan, Rule, SEGMENT_TARGET
from ..services.plan_service import PlanService
from .state import get_plan_service

router = APIRouter(prefix="/api/plans", tags=["plans"])


# Pydantic models for API
class RuleIn(BaseModel):
    """A collection percentage inside a plan request."""
    category_id: str
    percent_off: float


class PlanCreate(BaseModel):
    """Request model for creating a plan."""
    id: Optional[str] = None
    name: str
    target_type: str = SEGMENT_TARGET
    target_key: str
    rules: list[RuleIn] = []


class PlanUpdate(BaseModel):
    """Request model for updating a plan."""
    name: Optional[str] = None
    target_type: Optional[str] = None
    target_key: Optional[str] = None
    rules: Optional[list[RuleIn]] = None


class RuleResponse(BaseModel):
    id: Optional[str]
    category_id: str
    percent_off: float


class PlanResponse(BaseModel):
    """Response model for a plan."""
    id: str
    name: str
    target_type: str
    target_key: str
    max_percent: float
    rules: list[RuleResponse]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def _to_plan(data: PlanCreate) -> DiscountPlan:
    return DiscountPlan(
        id=data.id,
        name=data.name,
        target_type=data.target_type,
        target_key=data.target_key,
        rules=[Rule(category_id=r.category_id, percent_off=r.percent_off) for r in data.rules],
    )


def _to_response(plan: DiscountPlan) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        name=plan.name,
        target_type=plan.target_type,
        target_key=plan.target_key,
        max_percent=plan.max_percent,
        rules=[
            RuleResponse(id=r.id, category_id=r.category_id, percent_off=r.percent_off)
            for r in plan.rules
        ],
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


# Endpoints

@router.get("", response_model=list[PlanResponse])
def list_plans(target_type: Optional[str] = None, service: PlanService = Depends(get_plan_service)):
    """List all discount plans."""
    return [_to_response(plan) for plan in service.list_plans(target_type)]


@router.get("/stats")
def get_stats(service: PlanService = Depends(get_plan_service)):
    """Get plan statistics."""
    return service.get_stats()


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: str, service: PlanService = Depends(get_plan_service)):
    """Get a single plan by ID."""
    plan = service.get_plan(plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail=f"Plan '{plan_id}' not found")
    return _to_response(plan)


@router.post("", response_model=PlanResponse)
def create_plan(plan_data: PlanCreate, service: PlanService = Depends(get_plan_service)):
    """Create a new discount plan."""
    try:
        return _to_response(service.create_plan(_to_plan(plan_data)))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{plan_id}", response_model=PlanResponse)
def update_plan(plan_id: str, updates: PlanUpdate, service: PlanService = Depends(get_plan_service)):
    """Update an existing plan."""
    # Only fields present in the request body are applied
    update_dict = updates.model_dump(exclude_unset=True)
    try:
        return _to_response(service.update_plan(plan_id, update_dict))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{plan_id}")
def delete_plan(plan_id: str, service: PlanService = Depends(get_plan_service)):
    """Delete a plan and its rules."""
    try:
        service.delete_plan(plan_id)
        return {"success": True, "message": f"Plan '{plan_id}' deleted"}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/validate", response_model=ValidationResponse)
def validate_plan(plan_data: PlanCreate, service: PlanService = Depends(get_plan_service)):
    """Validate a plan without saving."""
    result = service.validate_plan(_to_plan(plan_data))
    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)
