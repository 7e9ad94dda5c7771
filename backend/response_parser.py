"""
Extract task candidates from a model reply.

Extraction runs an ordered list of tiers and keeps the first one that yields
anything:

1. structured: the ```json fenced block the prompt asks for
2. marked lines: "🟢 SIGNAL: name | WHAT: .. | WHY: .. | NEXT: .." lines,
   with a looser "marker + free text" grammar when the pipe form doesn't fit

Both tiers share one filter (clean the name, minimum length, first occurrence
of a normalized name wins). The marked-line tier also drops summary sentences
such as "Your top signal right now: ...", which the loose grammar would
otherwise pick up.
"""
import json
import logging
import re
from typing import Callable, NamedTuple, Optional

from config import TriageConfig
from models import CLASSIFICATIONS, ReconciliationResult, TaskCandidate, TrackedItem
from names import clean_name, normalize
from reconcile import reconcile

_logger = logging.getLogger(__name__)

JSON_BLOCK = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)


class LineMatch(NamedTuple):
    name: str
    what: str = ""
    why: str = ""
    next_action: str = ""


class _Collector:
    """Applies the shared candidate filter and keeps accepted candidates."""

    def __init__(self, config: TriageConfig, guard_commentary: bool = False):
        self.config = config
        self.guard_commentary = guard_commentary
        self.seen: set[str] = set()
        self.candidates: list[TaskCandidate] = []

    def add(self, raw_name: str, classification: str, what: str = "", why: str = "", next_action: str = "") -> bool:
        name = clean_name(raw_name)
        if len(name) < self.config.min_name_length:
            return False
        if self.guard_commentary and is_commentary(name, self.config):
            return False

        key = normalize(name)
        if key in self.seen:
            return False
        self.seen.add(key)

        self.candidates.append(TaskCandidate(
            name=name,
            classification=classification,
            what=what.strip(),
            why=why.strip(),
            next_action=next_action.strip(),
        ))
        return True


def is_commentary(name: str, config: Optional[TriageConfig] = None) -> bool:
    """True if the name reads like a summary sentence instead of a task."""
    config = config or TriageConfig()
    lower = name.lower()
    return any(phrase in lower for phrase in config.commentary_phrases)


def _text_field(item: dict, key: str) -> str:
    value = item.get(key)
    return value.strip() if isinstance(value, str) else ""


def _coerce_classification(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip().upper()
    return value if value in CLASSIFICATIONS else None


# Structured tier

def load_json_items(response_text: str, log: logging.Logger = _logger) -> Optional[list]:
    """
    Return the item list from the first ```json block, or None.
    Accepts a bare array or an object with an "items" array.
    """
    match = JSON_BLOCK.search(response_text)
    if not match:
        return None

    try:
        parsed = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        log.warning("JSON block failed to parse, falling back to marked lines: %s", e)
        return None

    items = parsed.get("items") if isinstance(parsed, dict) else parsed
    if not isinstance(items, list):
        log.warning("JSON block has no items array, falling back to marked lines")
        return None
    return items


def extract_structured(response_text: str, config: TriageConfig, log: logging.Logger = _logger) -> list[TaskCandidate]:
    items = load_json_items(response_text, log)
    if not items:
        return []

    collector = _Collector(config)
    for item in items:
        if not isinstance(item, dict):
            continue
        name = _text_field(item, "name")
        classification = _coerce_classification(item.get("classification"))
        if not name or classification is None:
            log.debug("Skipping JSON item missing name or classification: %r", item)
            continue
        collector.add(
            name,
            classification,
            what=_text_field(item, "what"),
            why=_text_field(item, "why"),
            next_action=_text_field(item, "next"),
        )
    return collector.candidates


# Marked-line tier

def _tag_prefix(marker: str, tag: str) -> str:
    return rf"{re.escape(marker)}\s*\**{tag}\**(?:\s*[:\-–—]|\s)\**\s*"


def match_pipe_fields(line: str, marker: str, tag: str) -> Optional[LineMatch]:
    """<marker> <TAG>: name [| WHAT: x] [| WHY: y] [| NEXT: z], whole line."""
    pattern = (
        _tag_prefix(marker, tag)
        + r"(?P<name>[^|]+?)\s*"
        r"(?:\|\s*WHAT:\s*(?P<what>[^|]*?)\s*)?"
        r"(?:\|\s*WHY:\s*(?P<why>[^|]*?)\s*)?"
        r"(?:\|\s*NEXT:\s*(?P<next>[^|]*?)\s*)?$"
    )
    match = re.search(pattern, line, re.IGNORECASE)
    if not match:
        return None
    return LineMatch(
        name=match.group("name"),
        what=match.group("what") or "",
        why=match.group("why") or "",
        next_action=match.group("next") or "",
    )


def match_tag_text(line: str, marker: str, tag: str) -> Optional[LineMatch]:
    """<marker> [TAG][:] free text, up to a pipe, a spaced dash or end of line."""
    pattern = (
        rf"{re.escape(marker)}\s*(?:\**{tag}\**(?:\s*[:\-–—]|\s))?\**\s*"
        r"(?P<name>.+?)\s*(?:\||\s[-–—]\s|$)"
    )
    match = re.search(pattern, line, re.IGNORECASE)
    if not match:
        return None
    return LineMatch(name=match.group("name"))


LineGrammar = Callable[[str, str, str], Optional[LineMatch]]

LINE_GRAMMARS: tuple[LineGrammar, ...] = (match_pipe_fields, match_tag_text)


def match_line(line: str, marker: str, tag: str) -> Optional[LineMatch]:
    for grammar in LINE_GRAMMARS:
        result = grammar(line, marker, tag)
        if result is not None:
            return result
    return None


def extract_marked_lines(response_text: str, config: TriageConfig, log: logging.Logger = _logger) -> list[TaskCandidate]:
    collector = _Collector(config, guard_commentary=True)
    for line in response_text.splitlines():
        for classification in CLASSIFICATIONS:
            marker = config.markers.get(classification)
            if not marker or marker not in line:
                continue
            # Summary sentence leading into the marker, e.g. "Your top signal: 🟢 ..."
            lead = line[:line.index(marker)]
            if is_commentary(lead, config):
                log.debug("Dropped marked line after commentary: %r", line)
                continue
            result = match_line(line, marker, classification)
            if result is None:
                continue
            if not collector.add(result.name, classification, result.what, result.why, result.next_action):
                log.debug("Dropped marked line candidate: %r", result.name)
    return collector.candidates


Tier = Callable[[str, TriageConfig, logging.Logger], list[TaskCandidate]]

TIERS: tuple[tuple[str, Tier], ...] = (
    ("structured", extract_structured),
    ("marked_lines", extract_marked_lines),
)


def extract_candidates(
    response_text: str,
    config: Optional[TriageConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> list[TaskCandidate]:
    """Candidates from the first tier that yields any; empty list if none do."""
    config = config or TriageConfig()
    log = logger or _logger

    if not response_text:
        return []

    for tier_name, tier in TIERS:
        candidates = tier(response_text, config, log)
        log.info(
            "Extracted %d candidates via %s tier", len(candidates), tier_name,
            extra={"tier": tier_name, "count": len(candidates)},
        )
        if candidates:
            return candidates
    return []


def parse_response(
    response_text: str,
    existing_items: list[TrackedItem],
    config: Optional[TriageConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> ReconciliationResult:
    """Extract candidates and reconcile them against the existing items."""
    config = config or TriageConfig()
    candidates = extract_candidates(response_text, config, logger)
    return reconcile(candidates, existing_items, config.match_threshold, logger)
