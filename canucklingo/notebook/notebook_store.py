"""
Notebook storage and data structures.

The notebook is an ordered list of saved entries kept in a single JSON
slot on local storage. Every mutation is written through immediately.
"""

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from ..config import NOTEBOOK_FILE

logger = logging.getLogger(__name__)


@dataclass
class Example:
    """One example sentence with its Mandarin translation."""

    english: str
    mandarin: str

    def to_dict(self) -> Dict:
        return {"english": self.english, "mandarin": self.mandarin}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Example':
        return cls(
            english=str(data.get('english', '')),
            mandarin=str(data.get('mandarin', '')),
        )


@dataclass
class Entry:
    """Complete vocabulary entry for the notebook."""

    id: str
    term: str
    context: str = ""
    definitionEnglish: str = ""
    definitionMandarin: str = ""
    examples: List[Example] = field(default_factory=list)
    usageNote: str = ""
    imageUrl: Optional[str] = None  # Base64 data URI
    timestamp: int = 0

    @classmethod
    def create(cls, term: str, explanation: Any, context: str = "",
               image_url: Optional[str] = None) -> 'Entry':
        """
        Build a fresh candidate entry from an explanation.

        Args:
            term: The searched term
            explanation: Explanation returned by the AI gateway
            context: Optional usage context supplied by the user
            image_url: Optional data URI of the illustration

        Returns:
            New Entry with an id and creation timestamp
        """
        return cls(
            id=uuid.uuid4().hex,
            term=term,
            context=context or "",
            definitionEnglish=explanation.definitionEnglish,
            definitionMandarin=explanation.definitionMandarin,
            examples=list(explanation.examples),
            usageNote=explanation.usageNote,
            imageUrl=image_url or None,
            timestamp=int(time.time() * 1000),
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "id": self.id,
            "term": self.term,
            "context": self.context,
            "definitionEnglish": self.definitionEnglish,
            "definitionMandarin": self.definitionMandarin,
            "examples": [ex.to_dict() for ex in self.examples],
            "usageNote": self.usageNote,
            "timestamp": self.timestamp,
        }
        if self.imageUrl:
            result["imageUrl"] = self.imageUrl
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> 'Entry':
        """
        Create from dictionary.

        Raises:
            ValueError: If the record has no term
        """
        if not isinstance(data, dict):
            raise ValueError(f"Entry record must be an object, got {type(data).__name__}")

        term = data.get('term')
        if not isinstance(term, str) or not term:
            raise ValueError("Entry record has no term")

        examples = data.get('examples') or []
        if not isinstance(examples, list):
            raise ValueError("Entry examples must be a list")

        return cls(
            id=str(data.get('id', '')),
            term=term,
            context=data.get('context') or "",
            definitionEnglish=data.get('definitionEnglish', ''),
            definitionMandarin=data.get('definitionMandarin', ''),
            examples=[Example.from_dict(ex) for ex in examples if isinstance(ex, dict)],
            usageNote=data.get('usageNote', ''),
            imageUrl=data.get('imageUrl') or None,
            timestamp=int(data.get('timestamp') or 0),
        )


class NotebookStore:
    """
    Manages the saved notebook in its local storage slot.

    Terms are unique within the notebook: toggling an entry whose term is
    already saved removes it instead of inserting a duplicate.
    """

    def __init__(self, filepath: str = None):
        """
        Initialize notebook store.

        Args:
            filepath: Path to the storage slot (default NOTEBOOK_FILE)
        """
        self.filepath = Path(filepath) if filepath else NOTEBOOK_FILE
        self._entries: List[Entry] = []
        self._lock = threading.Lock()

        self.load()

    def load(self) -> List[Entry]:
        """
        Load the notebook from storage.

        Missing or malformed content yields an empty notebook.

        Returns:
            The loaded entries
        """
        self._entries = []

        if not self.filepath.exists():
            return self.entries

        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (IOError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Failed to parse notebook %s: %s", self.filepath, e)
            return self.entries

        if not isinstance(data, list):
            logger.error("Notebook %s does not hold a list, starting empty", self.filepath)
            return self.entries

        for record in data:
            try:
                entry = Entry.from_dict(record)
            except (ValueError, TypeError) as e:
                logger.warning("Skipping unreadable notebook record: %s", e)
                continue
            if self.get(entry.term) is None:
                self._entries.append(entry)

        return self.entries

    def save(self, entries: Optional[List[Entry]] = None) -> bool:
        """
        Write the full notebook to storage.

        A failed write is logged; the in-memory notebook is kept as is.

        Args:
            entries: Collection to write (default: the current notebook)

        Returns:
            True if written
        """
        if entries is None:
            entries = self._entries

        tmp_path = None
        try:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            # The slot is only ever replaced by a complete file
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=self.filepath.parent,
                prefix=self.filepath.name, suffix='.tmp', delete=False
            ) as f:
                tmp_path = f.name
                json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.filepath)
            return True
        except (IOError, TypeError, ValueError) as e:
            logger.error("Failed to save notebook %s: %s", self.filepath, e)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            return False

    def toggle(self, entry: Entry) -> bool:
        """
        Save the entry, or unsave it if its term is already in the notebook.

        Args:
            entry: Entry to toggle

        Returns:
            True if the term is saved after the call
        """
        with self._lock:
            if any(e.term == entry.term for e in self._entries):
                self._entries = [e for e in self._entries if e.term != entry.term]
                saved = False
            else:
                self._entries = self._entries + [entry]
                saved = True
            self.save()

        logger.info("%s '%s' (%d in notebook)",
                    "Saved" if saved else "Removed", entry.term, len(self._entries))
        return saved

    def generate_story_inputs(self) -> List[str]:
        """Get saved terms in insertion order."""
        return [e.term for e in self._entries]

    @property
    def entries(self) -> List[Entry]:
        """Copy of the saved entries."""
        return list(self._entries)

    def is_saved(self, term: str) -> bool:
        """Check whether a term is in the notebook."""
        return self.get(term) is not None

    def get(self, term: str) -> Optional[Entry]:
        """Get entry by term."""
        for e in self._entries:
            if e.term == term:
                return e
        return None

    def get_by_index(self, index: int) -> Optional[Entry]:
        """Get entry by index."""
        entries = self._entries
        if 0 <= index < len(entries):
            return entries[index]
        return None

    def count(self) -> int:
        """Get entry count."""
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
