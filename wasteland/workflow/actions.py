"""
Wanted-board domain actions.

Each action reads the item from the checked-out branch, validates the
lifecycle transition and the actor, then performs the guarded write. All
checks happen before any write, so a rejected action never mutates.
"""

import logging
from dataclasses import replace

from wasteland.lib.commons import (
    DEFAULT_EFFORT,
    DEFAULT_SEVERITY,
    STATUS_OPEN,
    CompletionRecord,
    Stamp,
    WantedStore,
    WantedUpdate,
    WorkItem,
    generate_prefixed_id,
    generate_wanted_id,
    validate_accept,
    validate_post,
    validate_update,
)
from wasteland.lib.errors import InputError
from wasteland.workflow.lifecycle import Transition, check_actor, validate_transition

logger = logging.getLogger(__name__)


def new_item(
    rig: str,
    title: str,
    description: str = "",
    project: str = "",
    item_type: str = "",
    priority: int = 2,
    effort: str = DEFAULT_EFFORT,
    tags: list[str] | None = None,
) -> WorkItem:
    """Validated, not yet stored, item with a fresh id."""
    validate_post(title, item_type, effort, priority)
    return WorkItem(
        id=generate_wanted_id(title),
        title=title.strip(),
        description=description,
        project=project,
        type=item_type,
        priority=priority,
        tags=tags or [],
        posted_by=rig,
        status=STATUS_OPEN,
        effort_level=effort or DEFAULT_EFFORT,
    )


def post_item(store: WantedStore, item: WorkItem) -> WorkItem:
    store.insert_wanted(item)
    logger.info(f"[ACTION] posted {item.id} by {item.posted_by}")
    return item


def claim_item(store: WantedStore, wanted_id: str, rig: str) -> WorkItem:
    item = store.query_wanted(wanted_id)
    status = validate_transition(item.status, Transition.CLAIM)
    check_actor(Transition.CLAIM, item, rig)
    store.claim_wanted(wanted_id, rig)
    return replace(item, status=status, claimed_by=rig)


def unclaim_item(store: WantedStore, wanted_id: str, rig: str) -> WorkItem:
    item = store.query_wanted(wanted_id)
    status = validate_transition(item.status, Transition.UNCLAIM)
    check_actor(Transition.UNCLAIM, item, rig)
    store.unclaim_wanted(wanted_id)
    return replace(item, status=status, claimed_by="")


def submit_done(store: WantedStore, wanted_id: str, rig: str, evidence: str) -> CompletionRecord:
    """Move a claimed item to in_review with a completion record."""
    if not evidence.strip():
        raise InputError("evidence is required")
    item = store.query_wanted(wanted_id)
    validate_transition(item.status, Transition.DONE)
    check_actor(Transition.DONE, item, rig)
    completion_id = generate_prefixed_id("c", wanted_id, rig)
    store.submit_completion(completion_id, wanted_id, rig, evidence)
    return CompletionRecord(id=completion_id, wanted_id=wanted_id, completed_by=rig, evidence=evidence)


def accept_item(
    store: WantedStore,
    wanted_id: str,
    rig: str,
    quality: int,
    reliability: int | None = None,
    severity: str = DEFAULT_SEVERITY,
    skill_tags: list[str] | None = None,
    message: str = "",
) -> Stamp:
    """Accept the completion and issue a stamp from rig to the completer."""
    if reliability is None:
        reliability = quality
    validate_accept(quality, reliability, severity)
    item = store.query_wanted(wanted_id)
    validate_transition(item.status, Transition.ACCEPT)
    completion = store.query_completion(wanted_id)
    check_actor(Transition.ACCEPT, item, rig, completion)
    stamp = Stamp(
        id=generate_prefixed_id("s", wanted_id, completion.id, rig),
        author=rig,
        subject=completion.completed_by,
        quality=quality,
        reliability=reliability,
        severity=severity,
        context_id=completion.id,
        skill_tags=skill_tags or [],
        message=message,
    )
    store.accept_completion(wanted_id, completion.id, rig, stamp)
    return stamp


def reject_item(store: WantedStore, wanted_id: str, rig: str, reason: str = "") -> WorkItem:
    """Send an in_review item back to claimed and drop its completion."""
    item = store.query_wanted(wanted_id)
    status = validate_transition(item.status, Transition.REJECT)
    check_actor(Transition.REJECT, item, rig)
    store.reject_completion(wanted_id, rig, reason)
    return replace(item, status=status)


def close_item(store: WantedStore, wanted_id: str, rig: str) -> WorkItem:
    """Complete an in_review item without issuing a stamp."""
    item = store.query_wanted(wanted_id)
    status = validate_transition(item.status, Transition.CLOSE)
    check_actor(Transition.CLOSE, item, rig)
    store.close_wanted(wanted_id)
    return replace(item, status=status)


def update_item(store: WantedStore, wanted_id: str, rig: str, fields: WantedUpdate) -> WorkItem:
    validate_update(fields)
    item = store.query_wanted(wanted_id)
    validate_transition(item.status, Transition.UPDATE)
    check_actor(Transition.UPDATE, item, rig)
    store.update_wanted(wanted_id, fields)
    return store.query_wanted(wanted_id)


def delete_item(store: WantedStore, wanted_id: str, rig: str) -> WorkItem:
    """Withdraw an open item."""
    item = store.query_wanted(wanted_id)
    status = validate_transition(item.status, Transition.DELETE)
    check_actor(Transition.DELETE, item, rig)
    store.delete_wanted(wanted_id)
    return replace(item, status=status)
