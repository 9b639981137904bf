"""
Effective/pending plan state of a subscription.

Storage keeps two nullable columns (`plan_id`, `pending_plan_id`); in memory
the pair is one of two shapes:

- StablePlan: a single plan in effect, nothing scheduled.
- PendingPlanChange: the plan in effect plus the plan that takes over at the
  next period rollover.

Every transition between the shapes happens in this module.
"""

from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field


class StablePlan(BaseModel):
    kind: Literal["stable"] = "stable"
    plan_id: str


class PendingPlanChange(BaseModel):
    kind: Literal["pending"] = "pending"
    plan_id: str
    pending_plan_id: str


PlanState = Annotated[Union[StablePlan, PendingPlanChange], Field(discriminator="kind")]


def plan_state_from_columns(plan_id: str, pending_plan_id: Optional[str]) -> PlanState:
    if pending_plan_id:
        return PendingPlanChange(plan_id=plan_id, pending_plan_id=pending_plan_id)
    return StablePlan(plan_id=plan_id)


def plan_state_to_columns(state: PlanState) -> Tuple[str, Optional[str]]:
    if isinstance(state, PendingPlanChange):
        return state.plan_id, state.pending_plan_id
    return state.plan_id, None


def initial_plan_state(plan_id: str) -> PlanState:
    """State of a subscription seen for the first time."""
    return StablePlan(plan_id=plan_id)


def apply_snapshot(state: PlanState, snapshot_plan_id: str, rolled_over: bool) -> PlanState:
    """
    Merge the plan referenced by a Stripe snapshot into the current state.

    On a period rollover the snapshot's plan takes effect and any pending
    change is settled. Within the current period the snapshot's plan is only
    recorded as pending; a snapshot that merely echoes the plan already in
    effect leaves a scheduled change alone.
    """
    if rolled_over:
        return StablePlan(plan_id=snapshot_plan_id)
    if snapshot_plan_id == state.plan_id:
        return state
    return PendingPlanChange(plan_id=state.plan_id, pending_plan_id=snapshot_plan_id)


def schedule_change(state: PlanState, target_plan_id: str) -> PlanState:
    """Record a plan that should take effect at the next rollover."""
    return PendingPlanChange(plan_id=state.plan_id, pending_plan_id=target_plan_id)


def replace_effective(state: PlanState, plan_id: str) -> PlanState:
    """Switch the plan in effect immediately, keeping any scheduled change."""
    if isinstance(state, PendingPlanChange) and state.pending_plan_id != plan_id:
        return PendingPlanChange(plan_id=plan_id, pending_plan_id=state.pending_plan_id)
    return StablePlan(plan_id=plan_id)


def clear_pending(state: PlanState) -> PlanState:
    return StablePlan(plan_id=state.plan_id)
