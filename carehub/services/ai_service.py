"""
Text improvement through the OpenAI chat completions API.
"""

import logging
from typing import Optional

import httpx

from ..config import OPENAI_API_KEY, OPENAI_MODEL

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

_RULES = "Keep the original meaning and every important piece of information. Reply ONLY with the improved text."

CONTEXT_PROMPTS = {
    "medical_notes": (
        "You are a medical assistant who improves clinical notes. Keep medical accuracy and "
        "appropriate terminology, and give the note a clear professional structure."
    ),
    "protocol_name": (
        "You are a medical assistant who improves treatment protocol names. Make the name clear, "
        "concise and professional."
    ),
    "protocol_description": (
        "You are a medical assistant who improves treatment protocol descriptions. Make the description "
        "clear and well organised, focused on the purpose and benefits of the protocol."
    ),
    "task_title": (
        "You are a medical assistant who improves task titles inside treatment protocols. Make the title "
        "a short, specific action."
    ),
    "task_description": (
        "You are a medical assistant who improves task descriptions inside treatment protocols. Give the "
        "patient specific, practical instructions."
    ),
    "task_explanation": (
        "You are a medical assistant who improves detailed task explanations for patients. Keep scientific "
        "accuracy and make the explanation educational and well structured."
    ),
    "session_name": (
        "You are a medical assistant who improves session names inside treatment protocols. Make the name "
        "short and descriptive of the session's activities."
    ),
    "session_description": (
        "You are a medical assistant who improves session descriptions inside treatment protocols. Give a "
        "clear overview of the session's activities."
    ),
}
DEFAULT_PROMPT = "You are an assistant who improves texts. Make the text clearer and more professional."


class AIServiceNotConfiguredError(Exception):
    """OPENAI_API_KEY is not set"""


class AIServiceError(Exception):
    """The upstream API failed or returned something unusable"""


def build_system_prompt(context: Optional[str]) -> str:
    return f"{CONTEXT_PROMPTS.get(context or '', DEFAULT_PROMPT)} {_RULES}"


async def improve_text(text: str, context: Optional[str] = None) -> str:
    """Return the improved text; falls back to the input when the model answers empty"""
    if not OPENAI_API_KEY:
        raise AIServiceNotConfiguredError("OPENAI_API_KEY is not configured")

    payload = {
        "model": OPENAI_MODEL,
        "messages": [
            {"role": "system", "content": build_system_prompt(context)},
            {"role": "user", "content": text},
        ],
        "max_tokens": 1000,
        "temperature": 0.3,
    }

    try:
        async with httpx.AsyncClient(timeout=30) as client:
            response = await client.post(
                OPENAI_CHAT_URL,
                headers={"Authorization": f"Bearer {OPENAI_API_KEY}"},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.error(f"❌ OpenAI request failed: {e}")
        raise AIServiceError(str(e)) from e

    try:
        content = data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        logger.error(f"❌ Unexpected OpenAI response shape: {data}")
        raise AIServiceError("Unexpected response from OpenAI") from e

    return content.strip() or text
