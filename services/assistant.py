import json
import re
from dataclasses import asdict, dataclass

from flask import current_app

from errors import AssistantUnavailable, MalformedAssistantResponse
from services.upstream import call_upstream, require_setting

LISTING_PROMPT = """
You are a product listing assistant for an online store.
Your job is to analyze an image of a product and generate structured data.
Respond ONLY with raw JSON (no markdown, no code block).
The JSON must strictly follow this schema:
{
  "name": string,
  "description": string
}
"""

FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


@dataclass(frozen=True)
class Listing:
    name: str
    description: str

    def to_dict(self):
        return asdict(self)


def strip_fences(text):
    return FENCE_RE.sub("", text).strip()


def parse_listing(raw):
    cleaned = strip_fences(raw)
    try:
        data = json.loads(cleaned)
    except ValueError:
        current_app.logger.warning("Assistant returned non-JSON text: %r", cleaned[:500])
        raise MalformedAssistantResponse()

    if not isinstance(data, dict):
        raise MalformedAssistantResponse()
    name = data.get("name")
    description = data.get("description")
    if not isinstance(name, str) or not isinstance(description, str) or not name.strip():
        current_app.logger.warning("Assistant JSON misses name/description: %r", data)
        raise MalformedAssistantResponse()
    return Listing(name=name.strip(), description=description.strip())


def response_text(payload):
    try:
        return payload["candidates"][0]["content"]["parts"][0]["text"].strip()
    except (KeyError, IndexError, TypeError, AttributeError):
        current_app.logger.error("Unexpected Gemini response: %s", payload)
        raise AssistantUnavailable()


def extract_listing(base64_image, mime_type):
    config = current_app.config
    api_key = require_setting("GEMINI_API_KEY", "Gemini")
    body = {
        "contents": [
            {
                "parts": [
                    {"text": LISTING_PROMPT},
                    {"inline_data": {"mime_type": mime_type, "data": base64_image}},
                ]
            }
        ]
    }
    response = call_upstream(
        "POST",
        f"{config['GEMINI_API_BASE']}/models/{config['GEMINI_MODEL']}:generateContent",
        "Gemini",
        error_cls=AssistantUnavailable,
        params={"key": api_key},
        json=body,
    )
    try:
        payload = response.json()
    except ValueError:
        current_app.logger.error("Gemini answered with a non-JSON body")
        raise AssistantUnavailable()

    text = response_text(payload)
    if not text:
        raise AssistantUnavailable()
    return parse_listing(text)
