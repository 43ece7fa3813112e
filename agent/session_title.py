"""Short session titles generated from the first user message."""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from agent.config import get_extra_models
from agent.model_policy import CandidateModel, Tier, select_model
from agent.model_registry import available_models
from agent.subagent_executor import create_client

logger = logging.getLogger(__name__)

TITLE_INPUT_CHARS = 500

TITLE_PROMPT = (
    "Generate a short title (3-7 words, sentence case) for this coding session based on "
    "the user's message. Be concise and capture the main intent. Use common software "
    "engineering terms and acronyms when helpful. Do not assume intent beyond what's "
    "stated. Output only the title, nothing else."
)


def _content_text(content: Any, separator: str = " ") -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        ]
        return separator.join(parts)
    return ""


def get_first_user_text(messages: Sequence[Dict[str, Any]]) -> Optional[str]:
    """Text of the first user message, or None when there is none.

    Handles both plain string content and OpenAI-style content part lists.
    """
    for message in messages or ():
        if isinstance(message, dict) and message.get("role") == "user":
            return _content_text(message.get("content"))
    return None


def _clean_title(raw: str) -> str:
    title = raw.strip().splitlines()[0].strip() if raw and raw.strip() else ""
    return title.strip("\"'` ").rstrip(".")


def generate_title(
    text: str,
    client_factory: Optional[Callable[[CandidateModel], Any]] = None,
    candidates: Optional[List[CandidateModel]] = None,
) -> Optional[str]:
    """Ask a simple-tier model for a title. Returns None when the model says nothing.

    Raises:
        NoModelsAvailable: If no provider is configured.
    """
    if not text or not text.strip():
        return None
    pool = candidates if candidates is not None else available_models(extra_models=get_extra_models())
    selection = select_model(Tier.SIMPLE, pool)
    client = (client_factory or create_client)(selection.model)

    response = client.chat.completions.create(
        model=selection.model_id,
        messages=[
            {"role": "system", "content": TITLE_PROMPT},
            {"role": "user", "content": text[:TITLE_INPUT_CHARS]},
        ],
    )
    content = response.choices[0].message.content if response.choices else None
    title = _clean_title(content or "")
    logger.debug("Generated session title %r with %s", title, selection.model.ref)
    return title or None
