from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from completion import AnthropicCompletionService, CompletionError, CompletionService
from config import load_settings
from models import ChatRequest, ChatResponse, ItemPatch, Message, TrackedItem, UserContext
from triage import analyze
from database import (
    init_db,
    get_items,
    create_items,
    update_item,
    apply_updates,
    toggle_complete,
    delete_item,
    clear_completed,
    get_profile,
    save_profile,
    get_messages,
    add_message,
    clear_messages,
)

settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

INITIAL_GREETING = (
    "Hey! Just dump everything on your mind - work stuff, personal stuff, whatever's "
    "competing for your attention. I'll sort out what's signal and what's noise for you.\n\n"
    "No scoring, no decisions. Just tell me what's going on."
)
FALLBACK_REPLY = "Sorry, I'm having trouble connecting right now. Please try again in a moment."
RETRY_PROMPT = "Failed to get response. Please try again."


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()
    if settings.anthropic_api_key:
        app.state.completion = AnthropicCompletionService.from_settings(settings)
    else:
        logger.warning("ANTHROPIC_API_KEY not configured; /chat will not call the model")
        app.state.completion = None
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def current_user(x_user_id: str = Header(...)) -> str:
    """User id from the X-User-Id header; authentication happens upstream."""
    return x_user_id


def get_completion_service(request: Request) -> Optional[CompletionService]:
    return getattr(request.app.state, "completion", None)


def greeting(profile: UserContext) -> str:
    if profile.name:
        return f"Hey {profile.name}! {INITIAL_GREETING[5:]}"
    return INITIAL_GREETING


@app.get("/items")
def list_items(classification: Optional[str] = None, user_id: str = Depends(current_user)) -> list[TrackedItem]:
    return get_items(user_id, classification.upper() if classification else None)


@app.delete("/items/completed")
def clear_completed_items(user_id: str = Depends(current_user)) -> dict:
    return {"status": "cleared", "deleted": clear_completed(user_id)}


@app.patch("/items/{item_id}")
def patch_item(item_id: str, patch: ItemPatch, user_id: str = Depends(current_user)) -> TrackedItem:
    result = update_item(user_id, item_id, **patch.model_dump(exclude_none=True))
    if not result:
        raise HTTPException(status_code=404, detail="Item not found")
    return result


@app.post("/items/{item_id}/toggle")
def toggle_item(item_id: str, user_id: str = Depends(current_user)) -> TrackedItem:
    result = toggle_complete(user_id, item_id)
    if not result:
        raise HTTPException(status_code=404, detail="Item not found")
    return result


@app.delete("/items/{item_id}")
def remove_item(item_id: str, user_id: str = Depends(current_user)) -> dict:
    if not delete_item(user_id, item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"status": "deleted"}


@app.get("/profile")
def read_profile(user_id: str = Depends(current_user)) -> UserContext:
    return get_profile(user_id)


@app.put("/profile")
def write_profile(profile: UserContext, user_id: str = Depends(current_user)) -> UserContext:
    return save_profile(user_id, profile)


@app.get("/messages")
def list_messages(user_id: str = Depends(current_user)) -> list[Message]:
    """Saved transcript, or a greeting when the user has none yet."""
    messages = get_messages(user_id)
    if messages:
        return messages
    return [Message(role="assistant", content=greeting(get_profile(user_id)))]


@app.delete("/messages")
def reset_messages(user_id: str = Depends(current_user)) -> list[Message]:
    clear_messages(user_id)
    name = get_profile(user_id).name
    content = f"Fresh start, {name}. What's on your mind?" if name else "Fresh start. What's on your mind?"
    return [Message(role="assistant", content=content)]


@app.post("/chat")
async def chat(
    chat_request: ChatRequest,
    user_id: str = Depends(current_user),
    completion: Optional[CompletionService] = Depends(get_completion_service),
) -> ChatResponse:
    """Triage a brain dump (or reprioritize) and persist the resulting items."""
    if completion is None:
        return ChatResponse(response="API key not configured", items=get_items(user_id))

    add_message(user_id, "user", chat_request.message)

    mode = "reprioritize" if chat_request.reprioritize else "classify"
    try:
        result = await analyze(
            chat_request.message,
            get_profile(user_id),
            get_items(user_id),
            mode,
            completion,
            config=settings.triage,
        )
    except CompletionError as e:
        logger.error("Chat request failed for user %s: %s", user_id, e)
        add_message(user_id, "assistant", FALLBACK_REPLY)
        return ChatResponse(response=FALLBACK_REPLY, error=RETRY_PROMPT, items=get_items(user_id))

    add_message(user_id, "assistant", result.response)
    created = create_items(user_id, result.new_items)
    apply_updates(user_id, result.updates)

    return ChatResponse(
        response=result.response,
        new_items=created,
        updates=result.updates,
        items=get_items(user_id),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
