"""
Configuration settings for CanuckLingo.
"""

from pathlib import Path
import os
from dotenv import load_dotenv

VERSION = "1.0.0"

# Directory paths
BASE_DIR = Path(__file__).parent
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.environ.get("CANUCKLINGO_DATA_DIR", str(BASE_DIR / "data")))

# Name of the local storage slot holding the notebook
NOTEBOOK_SLOT = "canucklingo_notebook"
NOTEBOOK_FILE = DATA_DIR / f"{NOTEBOOK_SLOT}.json"

# Web server
HOST = os.environ.get("CANUCKLINGO_HOST", "0.0.0.0")
PORT = int(os.environ.get("CANUCKLINGO_PORT", "5001"))
LOG_LEVEL = os.environ.get("CANUCKLINGO_LOG_LEVEL", "INFO")

# API Keys (should be set via environment variables in production)
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "") or os.environ.get("API_KEY", "")

# Gemini models per operation
MODELS = {
    "text": "gemini-2.5-flash",
    "image": "gemini-2.5-flash-image",
    "tts": "gemini-2.5-flash-preview-tts",
}

# Text-to-speech: single prebuilt voice, raw PCM mono 16-bit at 24kHz
TTS_VOICE = "Kore"
TTS_SAMPLE_RATE = 24000

IMAGE_ASPECT_RATIO = "1:1"

# Story mode needs at least this many saved terms
STORY_MIN_TERMS = 2
STORY_LENGTH_WORDS = 150

# Fallback text when the service answers with empty content
CHAT_FALLBACK = "I couldn't understand that."
STORY_FALLBACK = "Could not generate story."

# Shown to the user when the explanation step fails
SEARCH_ERROR_MESSAGE = "Something went wrong. Please try again."
