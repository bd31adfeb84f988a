"""
Task unlock policy.

Per (user, language) the progression is a three-state machine:

    NEEDS_STARTER  some starter task has no recording by the user yet
    LOCKED         starters done, fewer than UNLOCK_THRESHOLD recordings this cycle
    UNLOCKED       starters done, threshold reached

Generating a task from UNLOCKED (or from LOCKED with force) moves the pair back
to LOCKED. A language without any task is seeded with the starter sequence.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .progress import is_unlocked, recordings_needed
from .schemas import Task, UserTaskProgress


class UnlockState(str, Enum):
    NEEDS_STARTER = "NEEDS_STARTER"
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"


class DecisionKind(str, Enum):
    SEED_STARTERS = "SEED_STARTERS"
    GENERATE = "GENERATE"
    REJECT_STARTER_PENDING = "REJECT_STARTER_PENDING"
    REJECT_LOCKED = "REJECT_LOCKED"


@dataclass
class PolicySnapshot:
    task_count: int
    next_starter: Optional[Task] = None
    progress: Optional[UserTaskProgress] = None


@dataclass
class GenerationDecision:
    kind: DecisionKind
    state: UnlockState
    recordings_needed: int = 0
    next_starter: Optional[Task] = None
    forced: bool = False

    @property
    def allowed(self) -> bool:
        return self.kind in (DecisionKind.SEED_STARTERS, DecisionKind.GENERATE)


def resolve_state(snapshot: PolicySnapshot) -> UnlockState:
    if snapshot.task_count == 0 or snapshot.next_starter is not None:
        return UnlockState.NEEDS_STARTER
    if is_unlocked(snapshot.progress):
        return UnlockState.UNLOCKED
    return UnlockState.LOCKED


def decide(snapshot: PolicySnapshot, force: bool = False) -> GenerationDecision:
    state = resolve_state(snapshot)

    if snapshot.task_count == 0:
        return GenerationDecision(kind=DecisionKind.SEED_STARTERS, state=state)

    if state is UnlockState.NEEDS_STARTER:
        return GenerationDecision(
            kind=DecisionKind.REJECT_STARTER_PENDING,
            state=state,
            next_starter=snapshot.next_starter,
        )

    if state is UnlockState.UNLOCKED:
        return GenerationDecision(kind=DecisionKind.GENERATE, state=state)

    if force:
        return GenerationDecision(kind=DecisionKind.GENERATE, state=state, forced=True)

    return GenerationDecision(
        kind=DecisionKind.REJECT_LOCKED,
        state=state,
        recordings_needed=recordings_needed(snapshot.progress),
    )
