"""
AI helpers for observation tagging and conversation summaries.

The helpers talk to OpenAI through a Pydantic AI ``Agent`` when an API key is
configured. Every helper has a deterministic fallback, so callers never need
to care whether AI is available.
"""

from __future__ import annotations

import re
import time
from functools import lru_cache
from typing import Any, List, Optional, Sequence, Tuple

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIResponsesModel
from pydantic_ai.providers.openai import OpenAIProvider

from indaba.core.logging_config import get_logger
from indaba.core.monitoring import log_ai_call
from indaba.server.core.config import settings

logger = get_logger(__name__)

CHILDCARE_SYSTEM_PROMPT = (
    "You are an AI assistant specialized in childcare and child development. "
    "Your role is to help nannies and parents communicate effectively about children's "
    "activities, development, and wellbeing. Be professional, supportive, and focused "
    "on child development best practices."
)

TAGS_PROMPT = """Analyze the following child observation and generate 3-5 relevant tags that categorize it.
Focus on developmental domains (physical, cognitive, social-emotional, language), activities, and skills demonstrated.

Observation Type: {observation_type}
Observation Content: {content}

Return the tags as a list of short phrases, for example: ["physical development", "fine motor skills", "drawing"]"""

SUMMARY_PROMPT = """Below are several messages exchanged between a nanny and parent about a child named {child_name}.
Summarize them into a concise child development update covering key activities, developmental progress,
concerns raised and any follow-ups needed. Keep it professional and factual.

MESSAGES:
{messages}

SUMMARY:"""

MIN_TAGS = 3
MAX_TAGS = 5


def is_ai_available() -> bool:
    return bool(settings.openai.api_key)


def default_observation_tags(observation_type: str) -> List[str]:
    return ["observation", observation_type.lower()]


@lru_cache(maxsize=1)
def _get_model() -> OpenAIResponsesModel:
    openai_config = settings.openai
    logger.debug(f"Initialized AI model {openai_config.model}")
    return OpenAIResponsesModel(openai_config.model, provider=OpenAIProvider(api_key=openai_config.api_key))


@lru_cache(maxsize=1)
def _get_agent() -> Agent:
    return Agent(_get_model(), system_prompt=CHILDCARE_SYSTEM_PROMPT)


@lru_cache(maxsize=1)
def _get_tag_agent() -> Agent:
    return Agent(_get_model(), output_type=List[str], system_prompt=CHILDCARE_SYSTEM_PROMPT)


async def _run(agent: Agent, prompt: str, feature: str) -> Optional[Any]:
    """Run ``agent`` on a prompt.

    Returns:
        The agent's output, or None when the call failed
    """
    start = time.perf_counter()
    try:
        result = await agent.run(prompt)
    except Exception as e:
        logger.error(f"AI call for {feature} failed: {e}", exc_info=True)
        log_ai_call(feature, settings.openai.model, ok=False, duration_ms=(time.perf_counter() - start) * 1000)
        return None
    log_ai_call(feature, settings.openai.model, ok=True, duration_ms=(time.perf_counter() - start) * 1000)
    return result.output


async def _run_prompt(prompt: str, feature: str) -> Optional[str]:
    output = await _run(_get_agent(), prompt, feature)
    return None if output is None else str(output)


async def _ask_for_tags(prompt: str) -> Optional[List[str]]:
    return await _run(_get_tag_agent(), prompt, "observation_tags")


def normalize_tags(tags: Sequence[str]) -> List[str]:
    """Trim, drop blanks and case-insensitive duplicates, and keep at most ``MAX_TAGS``."""
    seen = set()
    normalized = []
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            normalized.append(tag)
    return normalized[:MAX_TAGS]


async def generate_observation_tags(content: str, observation_type: str) -> List[str]:
    """Generate 3 to 5 categorization tags for an observation.

    Falls back to ``["observation", <type>]`` when AI is unavailable, the
    call fails, or fewer than ``MIN_TAGS`` usable tags come back.
    """
    if not is_ai_available():
        logger.debug("AI tag generation unavailable - OpenAI API key not configured")
        return default_observation_tags(observation_type)

    answer = await _ask_for_tags(TAGS_PROMPT.format(observation_type=observation_type, content=content or ""))
    tags = normalize_tags(answer or [])
    if len(tags) < MIN_TAGS:
        logger.debug(f"AI returned {len(tags)} usable tag(s); using default tags")
        return default_observation_tags(observation_type)
    return tags


def fallback_summary(messages: Sequence[Tuple[str, str]]) -> str:
    """Summarize without a model: one line per sender with their first sentence."""
    lines = []
    for sender_name, content in messages:
        first_sentence = re.split(r"(?<=[.!?])\s", content.strip(), maxsplit=1)[0]
        lines.append(f"{sender_name}: {first_sentence}")
    return "\n".join(lines)


async def summarize_messages(messages: Sequence[Tuple[str, str]], child_name: str) -> str:
    """Summarize a conversation about a child.

    Args:
        messages: (sender name, content) pairs, oldest first
        child_name: Name of the child the conversation is about

    Returns:
        Summary text; empty when there is nothing to summarize
    """
    if not messages:
        return ""
    if not is_ai_available():
        return fallback_summary(messages)

    joined = "\n\n".join(f"{sender}: {content}" for sender, content in messages)
    text = await _run_prompt(SUMMARY_PROMPT.format(child_name=child_name, messages=joined), "message_summary")
    if not text:
        return fallback_summary(messages)
    return text.strip()
