"""
Limit policy administration endpoints.

Plain CRUD over limit policies. Role checks belong to the gateway in
front of this service.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from points_ledger.api.errors import http_error
from points_ledger.exceptions import PointsError
from points_ledger.models.base import get_db
from points_ledger.models.enums import LimitScope
from points_ledger.services.limit_policy_service import LimitPolicyService
from points_ledger.schemas.limit_policy import LimitPolicyResponse, LimitPolicyUpsert

router = APIRouter(prefix="/points/limits", tags=["Limits"])


@router.get("", response_model=list[LimitPolicyResponse])
def list_limits(
    scope: LimitScope | None = None,
    entity_id: str | None = None,
    db: Session = Depends(get_db),
):
    policies = LimitPolicyService(db).list_policies(scope, entity_id)
    return [LimitPolicyResponse.from_policy(p) for p in policies]


@router.post("", response_model=LimitPolicyResponse)
def create_or_update_limit(
    request: LimitPolicyUpsert,
    db: Session = Depends(get_db),
):
    """Create the policy for a scope, or merge the given fields into it."""
    policy = LimitPolicyService(db).upsert(request)
    db.commit()
    return LimitPolicyResponse.from_policy(policy)


@router.delete("/{policy_id}", status_code=204)
def delete_limit(
    policy_id: int,
    db: Session = Depends(get_db),
):
    try:
        LimitPolicyService(db).delete(policy_id)
        db.commit()
    except PointsError as e:
        db.rollback()
        raise http_error(e)


@router.get("/student/{student_id}", response_model=LimitPolicyResponse)
def get_student_limit(
    student_id: str,
    school_id: str | None = None,
    db: Session = Depends(get_db),
):
    """
    The policy that would govern this student's next award.

    May create the default global policy on first use.
    """
    policy = LimitPolicyService(db).resolve(student_id, school_id)
    db.commit()
    return LimitPolicyResponse.from_policy(policy)
