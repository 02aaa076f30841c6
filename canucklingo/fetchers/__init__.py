"""
Gateway modules for CanuckLingo.

API Sources:
- Gemini 2.5 Flash: Explanations, Chat, Stories
- Gemini 2.5 Flash Image: Illustrations
- Gemini 2.5 Flash TTS: Pronunciation
"""

from .gemini_gateway import (
    GeminiGateway,
    Explanation,
    GatewayError,
    GatewayNotConfiguredError,
    ExplainError,
)
from .audio_player import AudioPlayer, decode_pcm16
from .api_status import (
    APIStatus,
    APIStatusInfo,
    APIStatusTracker,
    get_api_tracker
)

__all__ = [
    'GeminiGateway',
    'Explanation',
    'GatewayError',
    'GatewayNotConfiguredError',
    'ExplainError',
    'AudioPlayer',
    'decode_pcm16',
    'APIStatus',
    'APIStatusInfo',
    'APIStatusTracker',
    'get_api_tracker',
]
