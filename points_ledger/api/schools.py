"""
School point policy endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from points_ledger.models.base import get_db
from points_ledger.services.school_policy_service import SchoolPolicyService
from points_ledger.schemas.school_policy import SchoolPolicyResponse, SchoolPolicyUpdate

router = APIRouter(prefix="/points/schools", tags=["Schools"])


@router.get("/{school_id}/policy", response_model=SchoolPolicyResponse)
def get_school_policy(
    school_id: str,
    db: Session = Depends(get_db),
):
    """Get a school's point policy, creating the default one if absent."""
    policy = SchoolPolicyService(db).get_or_create(school_id)
    db.commit()
    return policy


@router.put("/{school_id}/policy", response_model=SchoolPolicyResponse)
def update_school_policy(
    school_id: str,
    request: SchoolPolicyUpdate,
    db: Session = Depends(get_db),
):
    policy = SchoolPolicyService(db).update(school_id, request)
    db.commit()
    return policy
