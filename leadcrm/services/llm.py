"""
LLM helpers — chat completion through an OpenAI-compatible API, JSON extraction.

The CRM core only relies on "returns a string containing one JSON object".
"""
import json
import logging
import re
from typing import Any, Dict, List

from openai import OpenAIError

from leadcrm import config
from leadcrm.errors import RemoteCallFailed, ValidationFailed
from leadcrm.extensions import get_openai_client

logger = logging.getLogger('services.llm')

_JSON_OBJECT_RE = re.compile(r'\{[\s\S]*\}')


def chat_completion(messages: List[Dict[str, str]], model: str = None, client=None) -> str:
    """
    Send role-tagged messages and return the assistant text, stripped.

    Raises RemoteCallFailed on API errors or an empty reply.
    """
    client = client or get_openai_client()
    model = model or config.OPENAI_MODEL
    try:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=config.OPENAI_MAX_TOKENS,
        )
    except OpenAIError as e:
        raise RemoteCallFailed('chat.completions.create', str(e)[:2000]) from e

    content = ''
    if response.choices:
        content = (response.choices[0].message.content or '').strip()
    if not content:
        raise RemoteCallFailed('chat.completions.create', 'LLM returned empty content')
    logger.debug("LLM reply: %d chars from %s", len(content), model)
    return content


def extract_json_block(text: str) -> Any:
    """Parse the outermost {...} block found in free text."""
    match = _JSON_OBJECT_RE.search(text or '')
    if not match:
        raise ValidationFailed("No JSON object found in response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValidationFailed(f"Malformed JSON object in response: {e}") from e
