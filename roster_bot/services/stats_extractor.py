"""
Screenshot stats extraction.

Sends a game screenshot to a vision-capable generative model and asks for a
JSON object with exactly three keys: name, might and kills. Anything other than
a well-formed object with those keys is treated as a failed extraction.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import aiohttp

from roster_bot.config import Config
from roster_bot.utils.exceptions import ExtractionError
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

GEMINI_ENDPOINT = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'

EXTRACTION_PROMPT = (
    "From the provided Lords Mobile game screenshot, extract the player's name, total might, and kills. "
    "The might value is often labeled \"Might\" and the kills value is often labeled \"Kills\". "
    "Return the data as a JSON object. The JSON object must have these exact keys: "
    "\"name\" (string), \"might\" (number), and \"kills\" (number). "
    "Do not include any formatting characters like commas in the numbers."
)

RESPONSE_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'name': {'type': 'STRING'},
        'might': {'type': 'NUMBER'},
        'kills': {'type': 'NUMBER'},
    },
    'required': ['name', 'might', 'kills'],
}


@dataclass(frozen=True)
class ExtractedStats:
    name: str
    might: float
    kills: float


class StatsExtractor(Protocol):
    async def extract(self, image_bytes: bytes, mime_type: str = 'image/png') -> ExtractedStats:
        ...


def build_request_payload(image_bytes: bytes, mime_type: str) -> Dict[str, Any]:
    """Schema-constrained generateContent request for one screenshot."""
    return {
        'contents': [{
            'parts': [
                {'text': EXTRACTION_PROMPT},
                {'inlineData': {
                    'mimeType': mime_type,
                    'data': base64.b64encode(image_bytes).decode('ascii'),
                }},
            ]
        }],
        'generationConfig': {
            'responseMimeType': 'application/json',
            'responseSchema': RESPONSE_SCHEMA,
        },
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_model_response(payload: Dict[str, Any]) -> ExtractedStats:
    """
    Pull the stats object out of a generateContent response.

    Raises:
        ExtractionError: missing candidate text, text that is not a JSON
            object, or missing / mistyped name, might or kills
    """
    try:
        text = payload['candidates'][0]['content']['parts'][0]['text']
    except (KeyError, IndexError, TypeError):
        raise ExtractionError("Failed to get a valid response from the AI model.")

    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        raise ExtractionError("The AI model did not return valid JSON.")

    if not isinstance(data, dict):
        raise ExtractionError("The AI model did not return a JSON object.")

    name = data.get('name')
    might = data.get('might')
    kills = data.get('kills')
    if not isinstance(name, str) or not name.strip() or not _is_number(might) or not _is_number(kills):
        raise ExtractionError("Could not extract all required fields from the image.")

    return ExtractedStats(name=name.strip(), might=might, kills=kills)


class GeminiStatsExtractor:
    """StatsExtractor backed by the Gemini generateContent REST endpoint."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[aiohttp.ClientSession] = None):
        self.api_key = api_key if api_key is not None else Config.GEMINI_API_KEY
        self.model = model or Config.GEMINI_MODEL
        self.timeout = aiohttp.ClientTimeout(total=timeout or Config.GEMINI_TIMEOUT_SECONDS)
        self._session = session

    async def extract(self, image_bytes: bytes, mime_type: str = 'image/png') -> ExtractedStats:
        if not self.api_key:
            raise ExtractionError("Screenshot analysis is not configured (missing GEMINI_API_KEY).")

        url = GEMINI_ENDPOINT.format(model=self.model)
        payload = build_request_payload(image_bytes, mime_type)

        session = self._session or aiohttp.ClientSession(timeout=self.timeout)
        try:
            async with session.post(url, params={'key': self.api_key}, json=payload) as response:
                if response.status != 200:
                    logger.warning(f"Gemini request failed with status {response.status}")
                    raise ExtractionError(f"AI analysis failed with status: {response.status}.")
                body = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"Gemini request error: {e}")
            raise ExtractionError(f"AI analysis request failed: {e}")
        finally:
            if self._session is None:
                await session.close()

        stats = parse_model_response(body)
        logger.info(f"Extracted stats for {stats.name}: might={stats.might}, kills={stats.kills}")
        return stats
