from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import select

from moneyflow.api.deps import db, current_user
from moneyflow.models.savings_goal import SavingsGoal
from moneyflow.schemas.goal import GoalCreate, GoalOut, GoalStatus, GoalStatusIn
from moneyflow.services.accounts import commit_or_raise, get_owned
from moneyflow.services.audit import log_event

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=list[GoalOut])
def list_goals(
    status: GoalStatus | None = Query("active"),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    q = select(SavingsGoal).where(SavingsGoal.user_id == u["sub"])
    if status is not None:
        q = q.where(SavingsGoal.status == status)
    q = q.order_by(SavingsGoal.deadline.asc(), SavingsGoal.created_at.asc())
    return s.execute(q).scalars().all()


@router.post("", response_model=GoalOut, status_code=201)
def create_goal(body: GoalCreate, u=Depends(current_user), s: Session = Depends(db)):
    g = SavingsGoal(user_id=u["sub"], **body.model_dump())
    s.add(g)
    commit_or_raise(s, "insert", "could not create goal")
    s.refresh(g)
    log_event(
        s,
        user_id=u["sub"],
        action="goal.create",
        entity_type="goal",
        entity_id=g.id,
        details={"name": g.name, "target_amount": str(g.target_amount)},
    )
    return g


@router.patch("/{goal_id}/status", response_model=GoalOut)
def update_status(goal_id: str, body: GoalStatusIn, u=Depends(current_user), s: Session = Depends(db)):
    g = get_owned(s, SavingsGoal, u["sub"], goal_id, "goal")
    previous = g.status
    g.status = body.status
    commit_or_raise(s, "update", "could not update goal")
    s.refresh(g)
    log_event(
        s,
        user_id=u["sub"],
        action="goal.status",
        entity_type="goal",
        entity_id=g.id,
        details={"from": previous, "to": g.status},
    )
    return g
