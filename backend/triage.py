import logging
from typing import Optional

from completion import CompletionService
from config import TriageConfig
from models import AnalysisResult, TrackedItem, UserContext
from prompts import build_prompt
from response_parser import parse_response

_logger = logging.getLogger(__name__)


async def analyze(
    user_message: str,
    user_context: Optional[UserContext],
    existing_items: list[TrackedItem],
    mode: str,
    completion: CompletionService,
    config: Optional[TriageConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> AnalysisResult:
    """
    Run one triage request end to end.

    Builds the prompt from the user's profile and items, asks the completion
    service, and (in classify mode) turns the reply into new items and
    updates. Reprioritize replies are advice only and never produce items.
    Completion failures propagate as CompletionError subclasses.
    """
    config = config or TriageConfig()
    log = logger or _logger

    active_items = [i for i in existing_items if not i.completed]
    completed_items = [i for i in existing_items if i.completed]
    system_prompt = build_prompt(user_context, active_items, completed_items, mode)

    log.info("Triage request mode=%s active=%d completed=%d", mode, len(active_items), len(completed_items),
             extra={"mode": mode, "active": len(active_items)})

    response_text = await completion.complete(system_prompt, user_message)

    if mode == "reprioritize":
        return AnalysisResult(response=response_text)

    result = parse_response(response_text, existing_items, config, log)
    return AnalysisResult(
        response=response_text,
        new_items=result.new_items,
        updates=result.updates,
    )
