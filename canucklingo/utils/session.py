"""
Session view-state for the active screen.

Nothing here is persisted: the state lives for the life of the process and
everything tied to a screen is dropped when the user navigates away.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Optional

from ..notebook.notebook_store import Entry


class ViewState(Enum):
    """Screens of the app."""
    SEARCH = "SEARCH"
    NOTEBOOK = "NOTEBOOK"
    FLASHCARDS = "FLASHCARDS"
    STORY = "STORY"


class FlowState(Enum):
    """Progress of a single search."""
    IDLE = "idle"
    EXPLAINING = "explaining"
    ILLUSTRATING = "illustrating"
    READY = "ready"
    FAILED = "failed"


@dataclass
class ChatMessage:
    """One message of a follow-up chat about a term."""

    role: str  # "user" or "assistant"
    text: str

    def to_dict(self) -> Dict:
        return {'role': self.role, 'text': self.text}


@dataclass
class SessionState:
    """Transient state of the current screen."""

    view: ViewState = ViewState.SEARCH

    # Search
    query: str = ""
    context: str = ""
    flow_state: FlowState = FlowState.IDLE
    current_result: Optional[Entry] = None
    error: str = ""

    # Flashcards
    flashcard_index: int = 0
    flipped: bool = False

    # Chat about the current result
    chat_history: List[ChatMessage] = field(default_factory=list)
    chat_pending: bool = False

    # Story mode
    story: Optional[str] = None
    story_pending: bool = False

    # Latest generation token per action, used to drop stale results
    generations: Dict[str, int] = field(default_factory=dict)

    def next_generation(self, action: str) -> int:
        """Start a new run of an action and return its token."""
        token = self.generations.get(action, 0) + 1
        self.generations[action] = token
        return token

    def is_current(self, action: str, token: int) -> bool:
        """Check that no newer run of the action has started."""
        return self.generations.get(action, 0) == token

    @property
    def is_searching(self) -> bool:
        return self.flow_state in (FlowState.EXPLAINING, FlowState.ILLUSTRATING)

    def clear_chat(self):
        """Drop the chat transcript and any reply still in flight."""
        self.chat_history = []
        self.chat_pending = False
        self.next_generation('chat')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the session endpoint."""
        return {
            'view': self.view.value,
            'query': self.query,
            'context': self.context,
            'flowState': self.flow_state.value,
            'currentResult': self.current_result.to_dict() if self.current_result else None,
            'error': self.error,
            'flashcardIndex': self.flashcard_index,
            'flipped': self.flipped,
            'chatHistory': [m.to_dict() for m in self.chat_history],
            'chatPending': self.chat_pending,
            'story': self.story,
            'storyPending': self.story_pending,
        }
