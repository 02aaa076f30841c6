"""
Gemini gateway for explanations, illustrations, speech, chat and stories.

Every operation is a single request/response exchange with the Gemini API.
Nothing here retries; callers decide what to do with a failure.

Failure modes:
- explain: raises ExplainError when no parsable payload comes back
- illustrate: returns None on any failure
- speak: logs and returns False on any failure
- converse / narrate: fixed fallback text on empty content
"""

import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from google import genai
from google.genai import types

from ..config import (
    GEMINI_API_KEY, MODELS, TTS_VOICE, IMAGE_ASPECT_RATIO,
    STORY_LENGTH_WORDS, CHAT_FALLBACK, STORY_FALLBACK
)
from ..notebook.notebook_store import Example
from .audio_player import AudioPlayer

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Raised when a request to the AI service fails."""


class GatewayNotConfiguredError(GatewayError):
    """Raised when no API key is available."""


class ExplainError(GatewayError):
    """Raised when the service returns no usable explanation."""


# Fields the explanation response must carry
EXPLANATION_FIELDS = (
    "definitionEnglish",
    "definitionMandarin",
    "examples",
    "usageNote",
    "imagePrompt",
)

EXPLANATION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "definitionEnglish": types.Schema(
            type=types.Type.STRING,
            description="Definition in English, suitable for advanced learners (IELTS 6.5+).",
        ),
        "definitionMandarin": types.Schema(
            type=types.Type.STRING,
            description="Definition in Mandarin Chinese.",
        ),
        "examples": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "english": types.Schema(
                        type=types.Type.STRING,
                        description="Example sentence in North American English.",
                    ),
                    "mandarin": types.Schema(
                        type=types.Type.STRING,
                        description="Mandarin translation of the example.",
                    ),
                },
                required=["english", "mandarin"],
            ),
        ),
        "usageNote": types.Schema(
            type=types.Type.STRING,
            description=(
                "A fun, concise, friend-like usage guide. Must cover: 1. Cultural "
                "context/scenarios. 2. Tone. 3. Related words (synonyms or easily "
                "confused words) and the differences. Avoid textbook style. Be "
                "direct and concise."
            ),
        ),
        "imagePrompt": types.Schema(
            type=types.Type.STRING,
            description="A concise visual description to generate an image representing this concept.",
        ),
    },
    required=list(EXPLANATION_FIELDS),
)

EXPLAIN_INSTRUCTION = """You are a friendly, expert Canadian English tutor for Mandarin speakers (IELTS 6.5+ level).
Your goal is to explain words/phrases/sentences naturally.
Provide the English definition first to encourage immersion, then the Mandarin.
Use Canadian spelling (e.g., colour, centre) and cultural references where appropriate.

For the 'usageNote':
- Adopt a chatty, friend-like tone.
- Cover cultural context, usage scenarios, and tone.
- CRITICAL: Mention related words, synonyms, or words that look similar but are often confused, and explain the differences.
- Be very concise and direct. No textbook fluff."""

CHAT_INSTRUCTION = (
    'You are a helpful Canadian English tutor. The user is currently studying the term: "{term}". '
    'Answer their follow-up questions concisely and helpfully.'
)

# Chat roles as Gemini expects them on the wire
WIRE_ROLES = {
    "user": "user",
    "assistant": "model",
}


@dataclass
class Explanation:
    """Structured explanation of a term."""

    definitionEnglish: str
    definitionMandarin: str
    examples: List[Example] = field(default_factory=list)
    usageNote: str = ""
    imagePrompt: str = ""


def parse_explanation(text: Optional[str]) -> Explanation:
    """
    Parse the JSON payload of an explain response.

    Raises:
        ExplainError: If the payload is empty, not JSON, or misses a field
    """
    if not text:
        raise ExplainError("No response from AI")

    try:
        data = json.loads(text)
    except ValueError as e:
        raise ExplainError(f"Unparsable explanation payload: {e}") from e

    if not isinstance(data, dict):
        raise ExplainError("Explanation payload is not an object")

    missing = [name for name in EXPLANATION_FIELDS if name not in data]
    if missing:
        raise ExplainError(f"Explanation payload is missing: {', '.join(missing)}")

    raw_examples = data["examples"]
    if not isinstance(raw_examples, list):
        raise ExplainError("Explanation examples must be a list")

    examples = []
    for raw in raw_examples:
        if not isinstance(raw, dict) or "english" not in raw or "mandarin" not in raw:
            raise ExplainError(f"Malformed example: {raw!r}")
        examples.append(Example.from_dict(raw))

    return Explanation(
        definitionEnglish=str(data["definitionEnglish"]),
        definitionMandarin=str(data["definitionMandarin"]),
        examples=examples,
        usageNote=str(data["usageNote"]),
        imagePrompt=str(data["imagePrompt"]),
    )


def _first_inline_data(response: Any) -> Optional[Any]:
    """Find the first inline data part of the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return inline
    return None


def _as_bytes(data: Any) -> bytes:
    """Inline data arrives as bytes from the SDK, or base64 text from raw JSON."""
    if isinstance(data, str):
        return base64.b64decode(data)
    return bytes(data)


class GeminiGateway:
    """
    Boundary to the Gemini API.

    The client is created on first use so the app can start without a key.
    """

    def __init__(self, api_key: str = None, client: Any = None,
                 player: AudioPlayer = None):
        """
        Initialize the gateway.

        Args:
            api_key: Gemini API key (default from GEMINI_API_KEY)
            client: Preconfigured genai client
            player: Audio player for speech output
        """
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self._client = client
        self.player = player or AudioPlayer()

    @property
    def client(self) -> Any:
        """Get or create the genai client."""
        if self._client is None:
            if not self.api_key:
                raise GatewayNotConfiguredError(
                    "Gemini API key not configured. Set GEMINI_API_KEY."
                )
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def explain(self, term: str, context: str = None) -> Explanation:
        """
        Request a structured bilingual explanation of a term.

        Args:
            term: Word, phrase or sentence to explain
            context: Optional usage context supplied by the user

        Returns:
            Parsed Explanation

        Raises:
            ExplainError: If no usable payload comes back
            GatewayError: If the request itself fails
        """
        if context:
            prompt_context = f'Context provided by user: "{context}". Ensure the explanation fits this context.'
        else:
            prompt_context = "No specific context provided."

        logger.info("Explaining '%s'", term)
        try:
            response = self.client.models.generate_content(
                model=MODELS["text"],
                contents=f'Explain the term: "{term}". {prompt_context}',
                config=types.GenerateContentConfig(
                    system_instruction=EXPLAIN_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=EXPLANATION_SCHEMA,
                ),
            )
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"Explain request failed: {e}") from e

        return parse_explanation(response.text)

    def illustrate(self, prompt: str) -> Optional[str]:
        """
        Request a square illustration.

        Args:
            prompt: Visual description of the concept

        Returns:
            Data URI of the image, or None if no image could be produced
        """
        try:
            response = self.client.models.generate_content(
                model=MODELS["image"],
                contents=f"A high quality, bright, minimalist illustration representing: {prompt}",
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(aspect_ratio=IMAGE_ASPECT_RATIO),
                ),
            )

            inline = _first_inline_data(response)
            if inline is None:
                logger.warning("Image response for '%s' had no image part", prompt[:60])
                return None

            encoded = base64.b64encode(_as_bytes(inline.data)).decode("ascii")
            return f"data:{inline.mime_type};base64,{encoded}"

        except Exception as e:
            logger.error("Image generation failed: %s", e)
            return None

    def speak(self, text: str) -> bool:
        """
        Synthesize speech for text and play it locally.

        Args:
            text: Text to read aloud

        Returns:
            True if playback started
        """
        if not isinstance(text, str) or not text.strip():
            return False

        try:
            response = self.client.models.generate_content(
                model=MODELS["tts"],
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(
                                voice_name=TTS_VOICE,
                            ),
                        ),
                    ),
                ),
            )

            inline = _first_inline_data(response)
            if inline is None:
                logger.warning("TTS response for '%s' had no audio", text[:60])
                return False

            return self.player.play(_as_bytes(inline.data))

        except Exception as e:
            logger.error("TTS failed: %s", e)
            return False

    def converse(self, history: Iterable[Any], message: str, term: str) -> str:
        """
        Ask a follow-up question about the term under study.

        Args:
            history: Prior chat messages (objects with role and text)
            message: New user message
            term: Term the conversation is about

        Returns:
            Reply text, or CHAT_FALLBACK on empty content

        Raises:
            GatewayError: If the request fails
        """
        contents = [
            types.Content(
                role=WIRE_ROLES.get(msg.role, msg.role),
                parts=[types.Part(text=msg.text)],
            )
            for msg in history
        ]

        try:
            chat = self.client.chats.create(
                model=MODELS["text"],
                config=types.GenerateContentConfig(
                    system_instruction=CHAT_INSTRUCTION.format(term=term),
                ),
                history=contents,
            )
            result = chat.send_message(message)
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"Chat request failed: {e}") from e

        return result.text or CHAT_FALLBACK

    def narrate(self, terms: List[str]) -> str:
        """
        Request a short story that uses every term.

        Args:
            terms: Terms to weave into the story

        Returns:
            Story text, or STORY_FALLBACK on empty content

        Raises:
            GatewayError: If the request fails
        """
        prompt = (
            f"Write a short, funny, and coherent story (approx {STORY_LENGTH_WORDS} words) "
            f"that includes the following words/phrases: {', '.join(terms)}. "
            "Highlight the used words in **bold** within the story. "
            "Ensure the tone is North American casual."
        )

        logger.info("Narrating a story with %d terms", len(terms))
        try:
            response = self.client.models.generate_content(
                model=MODELS["text"],
                contents=prompt,
            )
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"Story request failed: {e}") from e

        return response.text or STORY_FALLBACK
