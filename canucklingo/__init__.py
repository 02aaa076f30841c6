"""
CanuckLingo - AI Vocabulary Notebook

A browser-based tool for Mandarin speakers learning North American English:
1. EXPLAIN a term with a bilingual definition, examples and a usage note
2. SAVE terms to a personal notebook kept on this machine
3. REVIEW the notebook as flashcards or read it back as a story

Explanations, images, speech and stories come from the Gemini API.
"""

from .config import VERSION

__version__ = VERSION
__all__ = ['app', 'VERSION']
