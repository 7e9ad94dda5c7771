"""
Reconcile extracted candidates against the items a user already tracks.

Each candidate ends in exactly one state:
  - unmatched               -> new item
  - matched, class changed  -> update to the matched item
  - matched, same class     -> dropped (already tracked)
"""
import logging
from typing import Optional

from models import ItemUpdate, ReconciliationResult, TaskCandidate, TrackedItem
from similarity import similarity

_logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.75


def find_matching_item(
    name: str,
    existing_items: list[TrackedItem],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> Optional[TrackedItem]:
    """
    Best existing item whose similarity to name is strictly above threshold.
    On equal scores the earlier item in existing_items wins.
    """
    best_match = None
    best_score = threshold
    for item in existing_items:
        score = similarity(name, item.name)
        if score > best_score:
            best_match = item
            best_score = score
    return best_match


def merge_update(candidate: TaskCandidate, existing: TrackedItem) -> ItemUpdate:
    """Candidate's classification; each text field from the candidate if set, else kept."""
    return ItemUpdate(
        id=existing.id,
        classification=candidate.classification,
        what=candidate.what or existing.what or "",
        why=candidate.why or existing.why or "",
        next_action=candidate.next_action or existing.next_action or "",
    )


def reconcile(
    candidates: list[TaskCandidate],
    existing_items: list[TrackedItem],
    match_threshold: float = DEFAULT_MATCH_THRESHOLD,
    logger: Optional[logging.Logger] = None,
) -> ReconciliationResult:
    log = logger or _logger

    new_items: list[TaskCandidate] = []
    updates: list[ItemUpdate] = []
    updated_ids: set[str] = set()

    for candidate in candidates:
        match = find_matching_item(candidate.name, existing_items, match_threshold)

        if match is None:
            log.debug("New: %r (%s)", candidate.name, candidate.classification,
                      extra={"decision": "new", "candidate": candidate.name})
            new_items.append(candidate)
            continue

        if match.classification == candidate.classification:
            log.debug("Already tracked: %r matches %r", candidate.name, match.name,
                      extra={"decision": "drop", "candidate": candidate.name, "item_id": match.id})
            continue

        if match.id in updated_ids:
            log.debug("Skipping second update for %r from %r", match.name, candidate.name,
                      extra={"decision": "drop", "candidate": candidate.name, "item_id": match.id})
            continue

        log.debug("Update: %r %s -> %s", match.name, match.classification, candidate.classification,
                  extra={"decision": "update", "candidate": candidate.name, "item_id": match.id})
        updated_ids.add(match.id)
        updates.append(merge_update(candidate, match))

    log.info("Reconciled %d candidates: %d new, %d updates",
             len(candidates), len(new_items), len(updates),
             extra={"new": len(new_items), "updates": len(updates)})
    return ReconciliationResult(new_items=new_items, updates=updates)
