from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator

from agent.agent import Assistant, build_assistant
from agent.core.memory import ConversationStore
from config.settings import get_settings


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("chatdpt")

MAX_MESSAGE_LENGTH = 5000
MIN_THREAD_ID_LENGTH = 5
MAX_THREAD_ID_LENGTH = 100
INTERNAL_ERROR_MESSAGE = "An error occurred while processing your request. Please try again."


def _utf16_length(text: str) -> int:
    # Browser clients measure length in UTF-16 code units
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


async def _sweep_forever(store: ConversationStore, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            store.sweep()
        except Exception:
            logger.exception("Conversation sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    missing = settings.missing_credentials()
    if missing:
        for name in missing:
            logger.error("ERROR: %s is not set in environment variables", name)
        settings.require_credentials()

    store = ConversationStore(ttl_seconds=settings.conversation_ttl)
    app.state.store = store
    app.state.assistant = build_assistant(settings, store=store)
    logger.info(
        "Config: model=%s env=%s ttl=%ss max_attempts=%s",
        settings.groq_model,
        settings.app_env,
        settings.conversation_ttl,
        settings.max_attempts,
    )

    sweeper = asyncio.create_task(_sweep_forever(store, settings.sweep_interval))
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(title="ChatDPT Assistant", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., description="User's latest message")
    thread_id: str = Field(..., alias="threadId", description="Opaque conversation identifier")

    @model_validator(mode="before")
    @classmethod
    def _check_fields(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            raise ValueError("Request body must be a JSON object.")

        message = values.get("message")
        thread_id = values.get("threadId", values.get("thread_id"))

        if not message or not thread_id:
            raise ValueError("All fields are required!")
        if not isinstance(message, str) or not isinstance(thread_id, str):
            raise ValueError("Invalid field types. Both message and threadId must be strings.")
        if not message.strip():
            raise ValueError("Message cannot be empty or contain only whitespace.")
        if _utf16_length(message) > MAX_MESSAGE_LENGTH:
            raise ValueError(
                f"Message is too long. Maximum length is {MAX_MESSAGE_LENGTH} characters."
            )
        if not MIN_THREAD_ID_LENGTH <= _utf16_length(thread_id) <= MAX_THREAD_ID_LENGTH:
            raise ValueError("Invalid threadId format.")
        return values


class ChatResponse(BaseModel):
    message: str


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body."
    if first.get("type") == "missing":
        return "All fields are required!"
    ctx = first.get("ctx") or {}
    if ctx.get("error") is not None:
        return str(ctx["error"])
    return first.get("msg", "Invalid request.")


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"message": message})


def get_assistant(request: Request) -> Assistant:
    return request.app.state.assistant


@app.get("/", response_class=PlainTextResponse)
def index() -> str:
    return "Welcome to ChatDPT!"


@app.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, assistant: Assistant = Depends(get_assistant)):
    try:
        logger.info("Processing message from thread: %s (%s chars)", req.thread_id, len(req.message))
        result = await assistant.generate(req.message, req.thread_id)
        return {"message": result}
    except Exception as e:
        logger.exception("Error in /chat route: %s", e)
        body: Dict[str, Any] = {"message": INTERNAL_ERROR_MESSAGE}
        if get_settings().is_development:
            body["error"] = str(e)
        return JSONResponse(status_code=500, content=body)


@app.get("/health")
def health(request: Request):
    store = getattr(request.app.state, "store", None)
    return {"status": "ok", "conversations": len(store) if store is not None else 0}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
