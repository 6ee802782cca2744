"""
OpenRouter chat-completions client for post and carousel generation.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.config import settings
from core.exceptions import GenerationError
from integrations.base import HTTPIntegration
import logging

logger = logging.getLogger(__name__)

VARIATION_DELIMITER = "---VARIATION_START---"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7

SYSTEM_PROMPT = """You are an editor, not an author. Your job is to take the speaker's own words and shape them into LinkedIn posts.

Rules:
- Preserve the speaker's voice, opinions and examples. Do not invent facts, numbers or stories.
- Remove filler words, false starts and repetition.
- Keep each post under 3000 characters and easy to skim on mobile.
- Do not add hashtags unless the speaker used them.
- Do not wrap the posts in quotes or add commentary about them."""

VARIATION_GUIDES = {
    "professional": "Professional: clear, credible and insight-led, written for peers in the industry.",
    "personal": "Personal: first-person storytelling that shows what the speaker felt or learned.",
    "actionable": "Actionable: practical takeaways, steps or a short list the reader can apply today.",
    "discussion": "Discussion: frames the idea as an open question and invites comments.",
    "bold": "Bold: a strong, contrarian hook and confident short sentences.",
}


@dataclass
class GenerationResult:
    variations: List[str]
    model: str
    usage: Optional[Dict[str, Any]] = None
    raw_content: str = field(default="", repr=False)


def parse_variations(content: str) -> List[str]:
    """
    Split an LLM reply into variations on the delimiter.

    Text before the first delimiter is treated as preamble. A reply without
    any usable section becomes a single variation.
    """
    content = (content or "").strip()
    if not content:
        return []

    if VARIATION_DELIMITER in content:
        sections = content.split(VARIATION_DELIMITER)[1:]
    else:
        sections = [content]

    variations = [section.strip() for section in sections if section.strip()]
    return variations or [content]


def parse_carousel_slides(content: str, slide_count: Optional[int] = None) -> List[Dict[str, Any]]:
    """Extract the first JSON array of slides from an LLM reply and normalise it."""
    match = re.search(r"\[[\s\S]*\]", content or "")
    if not match:
        raise GenerationError("Carousel response did not contain a slide array")

    try:
        raw_slides = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise GenerationError("Carousel response was not valid JSON", original_exception=e)

    slides = []
    for item in raw_slides:
        if not isinstance(item, dict):
            continue
        slides.append({
            "slide_number": len(slides) + 1,
            "title": str(item.get("title") or "").strip(),
            "body": str(item.get("body") or "").strip(),
            "key_point": str(item.get("key_point") or "").strip() or None,
        })

    if slide_count:
        slides = slides[:slide_count]

    if not slides:
        raise GenerationError("Carousel response contained no slides")

    return slides


def build_variation_prompt(transcript: str, variation_type: Optional[str], count: int) -> str:
    if variation_type:
        guide = VARIATION_GUIDES[getattr(variation_type, "value", variation_type)]
        instructions = f"Write {count} different LinkedIn posts, all in this style:\n{guide}"
    else:
        guides = "\n".join(f"{i + 1}. {VARIATION_GUIDES[name]}" for i, name in enumerate(VARIATION_GUIDES))
        instructions = f"Write {count} LinkedIn posts, one in each of these styles, in this order:\n{guides}"

    return (
        f"{instructions}\n\n"
        f"Start every post with a line containing only {VARIATION_DELIMITER}\n\n"
        f"Transcript:\n\"\"\"\n{transcript}\n\"\"\""
    )


def build_carousel_prompt(transcript: str, slide_count: int) -> str:
    return (
        f"Turn this transcript into a LinkedIn carousel of exactly {slide_count} slides.\n"
        "The first slide is a hook, the last slide is a call to action.\n"
        "Respond with a JSON array only, where each element is "
        '{"slide_number": number, "title": string, "body": string, "key_point": string}.\n'
        "Keep titles under 8 words and bodies under 40 words.\n\n"
        f"Transcript:\n\"\"\"\n{transcript}\n\"\"\""
    )


class OpenRouterClient(HTTPIntegration):
    """Chat-completions client used for amplification"""

    service_name = "openrouter"
    error_class = GenerationError

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        app_url: Optional[str] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key or settings.OPENROUTER_API_KEY
        self.model = model or settings.OPENROUTER_MODEL
        self.base_url = (base_url or settings.OPENROUTER_BASE_URL).rstrip("/")
        self.app_url = app_url or settings.APP_URL

    async def chat(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE
    ) -> GenerationResult:
        if not self.api_key:
            raise GenerationError("OpenRouter API key not configured", context={"model": self.model})

        url = f"{self.base_url}/chat/completions"
        response = await self._request(
            "POST",
            url,
            json={
                "model": self.model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "HTTP-Referer": self.app_url,
                "X-Title": "Suflate",
            },
        )
        data = self._json(response)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(
                "OpenRouter response had no message content",
                context={"model": self.model},
                original_exception=e
            )

        return GenerationResult(
            variations=[],
            model=data.get("model", self.model),
            usage=data.get("usage"),
            raw_content=content or "",
        )

    async def generate_post_variations(
        self,
        transcript: str,
        variation_type: Optional[str] = None,
        count: Optional[int] = None
    ) -> GenerationResult:
        """
        Expand a transcript into post variations.

        Args:
            transcript: Source text
            variation_type: Restrict all variations to one style
            count: Number of variations (3 for a single style, otherwise 5)
        """
        if count is None:
            count = 3 if variation_type else len(VARIATION_GUIDES)

        result = await self.chat([
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_variation_prompt(transcript, variation_type, count)},
        ])
        result.variations = parse_variations(result.raw_content)[:count]

        if not result.variations:
            raise GenerationError("No variations generated", context={"model": result.model})

        logger.info(f"OpenRouter generated {len(result.variations)} variations with {result.model}")
        return result

    async def generate_carousel(self, transcript: str, slide_count: int) -> List[Dict[str, Any]]:
        result = await self.chat([
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_carousel_prompt(transcript, slide_count)},
        ])
        return parse_carousel_slides(result.raw_content, slide_count)
