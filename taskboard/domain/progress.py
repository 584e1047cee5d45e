"""
Progress lifecycle rules

- Completion toggles force progress: completed -> 100, un-completed -> 0 (full reset).
- Direct edits are monotonic: a requested value below the stored one is rejected.
- An increase is held as a pending edit until a non-empty note justifies it.

The pending edit is an explicit two-phase object:

    begin_progress_edit()  ->  PENDING  --confirm(note)-->  COMMITTED
                                        --cancel()------->  ROLLED_BACK
"""

from dataclasses import dataclass
from enum import Enum

from taskboard.core.errors import ValidationError

MIN_PROGRESS = 0
MAX_PROGRESS = 100


class MutationState(str, Enum):
    """Lifecycle of a gated mutation"""

    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def next_progress(current_progress: int, completed_toggled_to: bool) -> int:
    """Progress after a completion toggle; the current value is intentionally ignored"""
    return MAX_PROGRESS if completed_toggled_to else MIN_PROGRESS


def is_progress_edit_allowed(current: int, requested: int) -> bool:
    return MIN_PROGRESS <= requested <= MAX_PROGRESS and requested >= current


def apply_direct_edit(current: int, requested: int) -> int:
    """Stored value after a direct edit; decreases leave the value untouched"""
    if not is_progress_edit_allowed(current, requested):
        return current
    return requested


def is_completed_progress(progress: int) -> bool:
    return progress >= MAX_PROGRESS


@dataclass
class ProgressEdit:
    """A direct progress edit waiting for its justification note"""

    previous: int
    requested: int
    state: MutationState = MutationState.PENDING
    note: str | None = None

    @property
    def is_change(self) -> bool:
        return self.requested != self.previous

    @property
    def value(self) -> int:
        """Value visible to the rest of the system: the request only once committed"""
        return self.requested if self.state == MutationState.COMMITTED else self.previous

    def confirm(self, note: str | None) -> "ProgressEdit":
        """
        Commit the edit with its justification note.

        Raises:
            ValidationError: if the edit is no longer pending or the note is blank
        """
        if self.state != MutationState.PENDING:
            raise ValidationError(f"Progress edit is already {self.state.value}")
        cleaned = (note or "").strip()
        if self.is_change and not cleaned:
            raise ValidationError("A note describing the progress is required to update progress")
        self.note = cleaned or None
        self.state = MutationState.COMMITTED
        return self

    def cancel(self) -> "ProgressEdit":
        if self.state == MutationState.PENDING:
            self.state = MutationState.ROLLED_BACK
        return self


def begin_progress_edit(current: int, requested: int) -> ProgressEdit:
    """
    Open a progress edit.

    Raises:
        ValidationError: if the requested value is out of range or lower than the current one
    """
    if not MIN_PROGRESS <= requested <= MAX_PROGRESS:
        raise ValidationError(f"Progress must be between {MIN_PROGRESS} and {MAX_PROGRESS}")
    if requested < current:
        raise ValidationError(f"Progress cannot decrease (current {current}%, requested {requested}%)")
    return ProgressEdit(previous=current, requested=requested)
