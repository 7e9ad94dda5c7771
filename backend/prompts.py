# System prompts for the triage assistant
# Modes: classify = sort a brain dump into SIGNAL/NECESSARY/NOISE items
#        reprioritize = rank what is already tracked, no new items
from typing import Iterable, Optional

from models import TrackedItem, UserContext

MODES = ("classify", "reprioritize")
RECENT_COMPLETED_LIMIT = 5

CLASSIFY_PROMPT = """You are Signal Sorter, a decisive productivity AI for {user}{role}.

{context}

CURRENT TRACKED ITEMS:
{active_items}

YOUR TASK: When the user dumps tasks/thoughts, classify each one and respond conversationally.

OUTPUT FORMAT - For each NEW task (not already in the list above), output a JSON block:
```json
{{"items": [
  {{"name": "Short task name", "classification": "SIGNAL", "what": "What this involves", "why": "Why it matters", "next": "Specific next action"}},
  {{"name": "Another task", "classification": "NECESSARY", "what": "...", "why": "...", "next": "..."}},
  {{"name": "Low priority", "classification": "NOISE", "what": "...", "why": "Why it's noise", "next": "Defer/delegate/ignore"}}
]}}
```
"classification" must be exactly one of: SIGNAL, NECESSARY, NOISE.

CLASSIFICATION RULES:
- SIGNAL: Directly advances top priorities. High impact. Do these first.
- NECESSARY: Must be done but can be batched. Medium impact.
- NOISE: Doesn't advance priorities. Defer, delegate, or ignore.

CRITICAL RULES:
1. Keep task names SHORT (3-6 words max)
2. Be decisive - YOU classify, don't ask them to
3. DO NOT include items that are already tracked (check the list above!)
4. If the user mentions something already tracked, acknowledge it but don't re-add it
5. After the JSON block, add a brief conversational summary
6. End with a single line: "**Your top signal: [specific task]**"

Respond like a smart coworker, not a formal assistant. Be direct and helpful."""

REPRIORITIZE_PROMPT = """You are a decisive productivity coach helping {user} prioritize.

{context}

CURRENT ACTIVE ITEMS:
{active_items}

RECENTLY COMPLETED:
{completed_items}

YOUR TASK: Analyze their current items and tell them exactly what to focus on NOW.

RESPONSE FORMAT:
1. Start with their #1 priority and why
2. Give a brief ranking of their top 3 items
3. Be direct and actionable - no fluff

DO NOT suggest new items. Only work with what they have.
Keep response under 150 words. Be a decisive coach, not a passive assistant."""


def _joined(values: Optional[Iterable[str]]) -> str:
    return ", ".join(v for v in (values or []) if v)


def build_context_block(user_context: Optional[UserContext]) -> str:
    """One line per known profile field; unknown fields are left out."""
    ctx = user_context or UserContext()
    lines = [
        ("User", ctx.name),
        ("Role", ctx.role),
        ("Work priorities", _joined(ctx.work_priorities)),
        ("Personal priorities", _joined(ctx.personal_priorities)),
        ("Goals", _joined(ctx.goals)),
        ("Workday starts", ctx.workday_start),
        ("Focus challenge", ctx.focus_challenge),
    ]
    return "\n".join(f"{label}: {value}" for label, value in lines if value)


def _recent_completed(completed_items: list[TrackedItem]) -> list[TrackedItem]:
    # Newest first; items without a timestamp keep their order at the end
    dated = sorted(
        (i for i in completed_items if i.completed_at),
        key=lambda i: i.completed_at,
        reverse=True,
    )
    undated = [i for i in completed_items if not i.completed_at]
    return (dated + undated)[:RECENT_COMPLETED_LIMIT]


def build_prompt(
    user_context: Optional[UserContext],
    active_items: list[TrackedItem],
    completed_items: list[TrackedItem],
    mode: str = "classify",
) -> str:
    """Render the system prompt for one request."""
    if mode not in MODES:
        raise ValueError(f"Unknown prompt mode: {mode!r}")

    ctx = user_context or UserContext()
    context = build_context_block(ctx)

    if mode == "reprioritize":
        active_list = "\n".join(f'  - "{i.name}" [{i.classification}]' for i in active_items) or "  None"
        recent = _recent_completed(completed_items)
        completed_list = "\n".join(f'  - "{i.name}"' for i in recent) or "  None"
        return REPRIORITIZE_PROMPT.format(
            user=ctx.name or "the user",
            context=context,
            active_items=active_list,
            completed_items=completed_list,
        )

    active_list = "\n".join(f'  - "{i.name}" [{i.classification}]' for i in active_items) or "  None yet"
    return CLASSIFY_PROMPT.format(
        user=ctx.name or "a busy professional",
        role=f" working as {ctx.role}" if ctx.role else "",
        context=context,
        active_items=active_list,
    )
