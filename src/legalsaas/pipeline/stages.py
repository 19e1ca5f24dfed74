"""Stage registry and transition policy for stage-partitioned records.

A stage registry is the ordered list of kanban columns for one entity type.
Stage ids are stable: records reference stages by id, so renaming a stage
only changes its label. The transition policy decides which stage moves are
legal; deals, projects and tasks use free assignment while billing documents
use an explicit transition table.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class Stage(BaseModel):
    """One column of a pipeline board."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    color: str = "gray"
    description: str = ""


# ── Errors ──────────────────────────────────────────────────────────────────


class UnknownStageError(ValueError):
    """Raised when a stage id is not present in a registry."""

    def __init__(self, stage_id: str) -> None:
        self.stage_id = stage_id
        super().__init__(f"Unknown stage: {stage_id}")


class DuplicateStageError(ValueError):
    """Raised when adding a stage whose id is already registered."""

    def __init__(self, stage_id: str) -> None:
        self.stage_id = stage_id
        super().__init__(f"Stage already registered: {stage_id}")


class InvalidStageTransitionError(ValueError):
    """Raised when a stage transition is not allowed by the transition table.

    Attributes:
        from_stage: The current stage.
        to_stage: The attempted target stage.
        allowed: Stages reachable from from_stage.
    """

    def __init__(self, from_stage: str, to_stage: str, allowed: frozenset[str] = frozenset()) -> None:
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.allowed = allowed
        allowed_str = ", ".join(sorted(allowed)) if allowed else "none (terminal)"
        super().__init__(
            f"Invalid stage transition: {from_stage} -> {to_stage}. "
            f"Allowed transitions from {from_stage}: {allowed_str}"
        )


# ── Registry ────────────────────────────────────────────────────────────────


class StageRegistry:
    """Ordered, id-addressable collection of stages."""

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self._stages: list[Stage] = []
        for stage in stages:
            self.add(stage)

    def __iter__(self) -> Iterator[Stage]:
        return iter(list(self._stages))

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, stage_id: object) -> bool:
        return any(stage.id == stage_id for stage in self._stages)

    def stages(self) -> list[Stage]:
        """All stages in board order."""
        return list(self._stages)

    def ids(self) -> list[str]:
        """All stage ids in board order."""
        return [stage.id for stage in self._stages]

    def get(self, stage_id: str) -> Stage:
        for stage in self._stages:
            if stage.id == stage_id:
                return stage
        raise UnknownStageError(stage_id)

    def rename(self, stage_id: str, name: str) -> Stage:
        """Change a stage's display label. The id, and every record pointing at it, is untouched.

        Raises:
            UnknownStageError: If stage_id is not registered.
            ValueError: If the new name is blank.
        """
        name = name.strip()
        if not name:
            raise ValueError("Stage name must not be blank")
        index = self._index(stage_id)
        renamed = self._stages[index].model_copy(update={"name": name})
        self._stages[index] = renamed
        logger.info("stage.renamed", stage_id=stage_id, name=name)
        return renamed

    def add(self, stage: Stage, position: int | None = None) -> Stage:
        """Register a stage at the end of the board, or at ``position``."""
        if stage.id in self:
            raise DuplicateStageError(stage.id)
        if position is None:
            self._stages.append(stage)
        else:
            self._stages.insert(position, stage)
        return stage

    def remove(self, stage_id: str) -> Stage:
        """Unregister a stage. Records still pointing at it drop out of every board column."""
        return self._stages.pop(self._index(stage_id))

    def copy(self) -> StageRegistry:
        return StageRegistry(stage.model_copy() for stage in self._stages)

    def _index(self, stage_id: str) -> int:
        for index, stage in enumerate(self._stages):
            if stage.id == stage_id:
                return index
        raise UnknownStageError(stage_id)


# ── Transition Policy ───────────────────────────────────────────────────────


class TransitionPolicy:
    """Decides which stage moves are legal.

    With no table every move is allowed. With a table, a move from A to B is
    allowed only when B is listed under A; stages missing from the table are
    terminal. Moving a record to the stage it is already in is always a no-op.
    """

    def __init__(self, table: Mapping[str, Iterable[str]] | None = None) -> None:
        self._table = (
            None if table is None
            else {stage: frozenset(targets) for stage, targets in table.items()}
        )

    @property
    def is_free(self) -> bool:
        return self._table is None

    def allowed_from(self, from_stage: str) -> frozenset[str] | None:
        """Stages reachable from from_stage, or None when every move is allowed."""
        if self._table is None:
            return None
        return self._table.get(from_stage, frozenset())

    def validate(self, from_stage: str, to_stage: str) -> None:
        """Raise InvalidStageTransitionError if from_stage -> to_stage is not allowed."""
        if from_stage == to_stage:
            return
        allowed = self.allowed_from(from_stage)
        if allowed is None:
            return
        if to_stage not in allowed:
            raise InvalidStageTransitionError(from_stage, to_stage, allowed)


FREE_TRANSITIONS = TransitionPolicy()
