"""Wanted-item lifecycle state machine using the transitions library.

States: open -> claimed -> in_review -> completed, with reject sending an
in_review item back to claimed, unclaim returning claimed to open, and
delete withdrawing an open item. `completed` and `withdrawn` are terminal.

The machine only answers "is this transition legal from this status";
who may perform it is checked separately by check_actor().

Usage:
    from wasteland.workflow.lifecycle import validate_transition, Transition

    next_status = validate_transition("open", Transition.CLAIM)  # "claimed"
"""

import logging
from enum import Enum

from transitions import Machine, MachineError

from wasteland.lib.commons import (
    STATUSES,
    CompletionRecord,
    WorkItem,
)
from wasteland.lib.errors import AuthorizationError, StateConflictError

logger = logging.getLogger(__name__)


class Transition(str, Enum):
    """Named lifecycle changes. Values are the machine triggers."""

    CLAIM = "claim"
    UNCLAIM = "unclaim"
    DONE = "done"
    ACCEPT = "accept"
    REJECT = "reject"
    CLOSE = "close"
    DELETE = "delete"
    UPDATE = "update"


TRANSITIONS = [
    {"trigger": "claim", "source": "open", "dest": "claimed"},
    {"trigger": "unclaim", "source": "claimed", "dest": "open"},
    {"trigger": "done", "source": "claimed", "dest": "in_review"},
    {"trigger": "accept", "source": "in_review", "dest": "completed"},
    {"trigger": "reject", "source": "in_review", "dest": "claimed"},
    {"trigger": "close", "source": "in_review", "dest": "completed"},
    {"trigger": "delete", "source": "open", "dest": "withdrawn"},
    # Field edits keep the item open
    {"trigger": "update", "source": "open", "dest": "open"},
]

TERMINAL_STATES = {"completed", "withdrawn"}

# trigger -> required source status (each trigger has exactly one source)
SOURCE_FOR = {t["trigger"]: t["source"] for t in TRANSITIONS}


class ItemFSM:
    """Throwaway machine positioned at an item's current status."""

    def __init__(self, status: str):
        self.machine = Machine(
            model=self,
            states=STATUSES,
            transitions=TRANSITIONS,
            initial=status,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            f"[LIFECYCLE] {event.transition.source} -> {event.transition.dest} ({event.event.name})"
        )

    def can(self, trigger: str) -> bool:
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        return self.machine.get_triggers(self.state)


def validate_transition(status: str, kind: Transition | str) -> str:
    """Return the status the item moves to, or raise StateConflictError.

    The error message names the observed status.
    """
    trigger = Transition(kind).value
    required = SOURCE_FOR[trigger]
    if status not in STATUSES:
        raise StateConflictError(f"cannot {trigger}: item is {status or 'missing'}, not {required}", status=status)
    fsm = ItemFSM(status)
    if not fsm.can(trigger):
        raise StateConflictError(f"cannot {trigger}: item is {status}, not {required}", status=status)
    try:
        fsm.trigger(trigger)
    except MachineError as e:
        raise StateConflictError(f"cannot {trigger}: {e.value}", status=status) from None
    return fsm.state


def check_actor(
    kind: Transition | str,
    item: WorkItem,
    rig: str,
    completion: CompletionRecord | None = None,
) -> None:
    """Raise AuthorizationError if rig may not perform kind on item.

    Rig handles compare by exact string equality.
    """
    kind = Transition(kind)
    if kind is Transition.UNCLAIM:
        if rig not in (item.claimed_by, item.posted_by):
            raise AuthorizationError(
                f"only the claimer ({item.claimed_by}) or poster ({item.posted_by}) can unclaim {item.id}",
                status=item.status,
            )
    elif kind is Transition.DONE:
        if item.claimed_by != rig:
            raise AuthorizationError(
                f"wanted item {item.id} is not claimed by you (claimed by {item.claimed_by or 'nobody'})",
                status=item.status,
            )
    elif kind is Transition.ACCEPT:
        # Self-accept is refused before the poster check
        if completion is not None and completion.completed_by == rig:
            raise AuthorizationError("cannot accept your own completion", status=item.status)
        if item.posted_by != rig:
            raise AuthorizationError(
                f"only the poster ({item.posted_by}) can accept {item.id}", status=item.status
            )
    elif kind in (Transition.REJECT, Transition.CLOSE):
        if item.posted_by != rig:
            raise AuthorizationError(
                f"only the poster ({item.posted_by}) can {kind.value} {item.id}", status=item.status
            )


def available_transitions(
    item: WorkItem,
    rig: str,
    completion: CompletionRecord | None = None,
) -> list[str]:
    """Triggers rig may run on item right now."""
    if item.status not in STATUSES or item.status in TERMINAL_STATES:
        return []
    allowed = []
    for trigger in ItemFSM(item.status).get_available_triggers():
        try:
            check_actor(trigger, item, rig, completion)
        except AuthorizationError:
            continue
        allowed.append(trigger)
    return allowed
