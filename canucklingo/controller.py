"""
View controller: turns user actions into gateway calls and notebook changes.

Search flow:
    IDLE -> EXPLAINING -> ILLUSTRATING -> READY
    IDLE -> EXPLAINING -> FAILED

Only the explanation is mandatory. A missing illustration still ends in
READY. Each search, chat transcript and story request carries a generation
token; a result whose token has been superseded is dropped.
"""

import logging
import threading
from typing import Optional

from .config import STORY_MIN_TERMS, SEARCH_ERROR_MESSAGE
from .fetchers.gemini_gateway import GeminiGateway
from .notebook.notebook_store import NotebookStore, Entry
from .utils.session import SessionState, ViewState, FlowState, ChatMessage

logger = logging.getLogger(__name__)


class NotEnoughTermsError(ValueError):
    """Raised when story mode is requested with too few saved terms."""


class UnknownEntryError(LookupError):
    """Raised when an action refers to an entry that is not available."""


class ChatBusyError(RuntimeError):
    """Raised when a chat message is sent while a reply is still pending."""


class ViewController:
    """
    Orchestrates the screens of the app.

    The notebook store is the only durable state; everything else lives in
    the session and is discarded on navigation.
    """

    def __init__(self, gateway: GeminiGateway, store: NotebookStore,
                 session: SessionState = None):
        self.gateway = gateway
        self.store = store
        self.session = session or SessionState()
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def navigate(self, view: ViewState):
        """Switch screens. The chat transcript does not survive the switch."""
        with self._lock:
            if view != self.session.view:
                self.session.clear_chat()
            self.session.view = view

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(self, term: str, context: str = "") -> Optional[Entry]:
        """
        Explain a term, then illustrate it.

        Args:
            term: Term to look up
            context: Optional usage context

        Returns:
            The candidate entry, or None if the search failed, was blank,
            or was superseded by a newer search
        """
        term = (term or "").strip()
        context = (context or "").strip()
        if not term:
            return None

        with self._lock:
            token = self.session.next_generation('search')
            self.session.query = term
            self.session.context = context
            self.session.current_result = None
            self.session.error = ""
            self.session.flow_state = FlowState.EXPLAINING
            self.session.clear_chat()

        try:
            explanation = self.gateway.explain(term, context or None)
        except Exception as e:
            logger.error("Explaining '%s' failed: %s", term, e)
            with self._lock:
                if self.session.is_current('search', token):
                    self.session.flow_state = FlowState.FAILED
                    self.session.error = SEARCH_ERROR_MESSAGE
            return None

        with self._lock:
            if not self.session.is_current('search', token):
                logger.info("Discarding stale explanation for '%s'", term)
                return None
            self.session.flow_state = FlowState.ILLUSTRATING

        image_url = self.gateway.illustrate(explanation.imagePrompt or term)
        entry = Entry.create(term, explanation, context=context, image_url=image_url)

        with self._lock:
            if not self.session.is_current('search', token):
                logger.info("Discarding stale result for '%s'", term)
                return None
            self.session.current_result = entry
            self.session.flow_state = FlowState.READY

        return entry

    # -------------------------------------------------------------------------
    # Notebook
    # -------------------------------------------------------------------------

    def toggle_save(self, entry: Entry) -> bool:
        """Save or unsave an entry. Returns True if it is saved afterwards."""
        return self.store.toggle(entry)

    def toggle_save_term(self, term: str) -> bool:
        """
        Toggle by term, taking the entry from the notebook or the current result.

        Raises:
            UnknownEntryError: If the term is neither saved nor the current result
        """
        entry = self.store.get(term)
        if entry is None:
            current = self.session.current_result
            if current is not None and current.term == term:
                entry = current

        if entry is None:
            raise UnknownEntryError(f"No entry for '{term}'")

        return self.toggle_save(entry)

    def is_saved(self, term: str) -> bool:
        return self.store.is_saved(term)

    # -------------------------------------------------------------------------
    # Flashcards
    # -------------------------------------------------------------------------

    def current_card(self) -> Optional[Entry]:
        """Get the entry under the flashcard cursor."""
        total = self.store.count()
        if total == 0:
            return None

        # Removals can leave the cursor past the end
        if self.session.flashcard_index >= total:
            self.session.flashcard_index = self.session.flashcard_index % total
        return self.store.get_by_index(self.session.flashcard_index)

    def next_card(self) -> Optional[Entry]:
        return self._move_card(1)

    def prev_card(self) -> Optional[Entry]:
        return self._move_card(-1)

    def _move_card(self, step: int) -> Optional[Entry]:
        total = self.store.count()
        if total == 0:
            return None

        with self._lock:
            self.session.flashcard_index = (self.session.flashcard_index + step + total) % total
            self.session.flipped = False
        return self.current_card()

    def flip_card(self) -> bool:
        """Flip the current card. Returns True if the back is showing."""
        with self._lock:
            self.session.flipped = not self.session.flipped
            return self.session.flipped

    # -------------------------------------------------------------------------
    # Story mode
    # -------------------------------------------------------------------------

    def generate_story(self) -> Optional[str]:
        """
        Weave every saved term into a short story.

        Returns:
            Story text, or None if the request failed or was superseded

        Raises:
            NotEnoughTermsError: With fewer than STORY_MIN_TERMS saved terms
        """
        if self.store.count() < STORY_MIN_TERMS:
            raise NotEnoughTermsError(
                f"Story mode needs at least {STORY_MIN_TERMS} saved terms"
            )

        terms = self.store.generate_story_inputs()

        with self._lock:
            token = self.session.next_generation('story')
            self.session.story = None
            self.session.story_pending = True

        try:
            story = self.gateway.narrate(terms)
        except Exception as e:
            logger.error("Story generation failed: %s", e)
            with self._lock:
                if self.session.is_current('story', token):
                    self.session.story_pending = False
            return None

        with self._lock:
            if not self.session.is_current('story', token):
                logger.info("Discarding stale story")
                return None
            self.session.story = story
            self.session.story_pending = False
            if self.session.view != ViewState.STORY:
                self.session.clear_chat()
            self.session.view = ViewState.STORY

        return story

    # -------------------------------------------------------------------------
    # Chat and speech
    # -------------------------------------------------------------------------

    def send_chat(self, message: str) -> Optional[str]:
        """
        Ask a follow-up question about the current result.

        Returns:
            Reply text, or None for a blank message, a failed request or a
            transcript that was discarded meanwhile

        Raises:
            UnknownEntryError: If there is no current result to talk about
            ChatBusyError: If the previous message has not been answered yet
        """
        message = (message or "").strip()
        if not message:
            return None

        with self._lock:
            entry = self.session.current_result
            if entry is None:
                raise UnknownEntryError("No term to chat about")
            if self.session.chat_pending:
                raise ChatBusyError("Still waiting for the previous reply")
            history = list(self.session.chat_history)
            self.session.chat_history.append(ChatMessage(role='user', text=message))
            self.session.chat_pending = True
            token = self.session.generations.get('chat', 0)

        try:
            reply = self.gateway.converse(history, message, entry.term)
        except Exception as e:
            logger.error("Chat about '%s' failed: %s", entry.term, e)
            with self._lock:
                if self.session.is_current('chat', token):
                    self.session.chat_pending = False
            return None

        with self._lock:
            if not self.session.is_current('chat', token):
                logger.info("Discarding reply for a closed chat about '%s'", entry.term)
                return None
            self.session.chat_history.append(ChatMessage(role='assistant', text=reply))
            self.session.chat_pending = False

        return reply

    def speak(self, text: str) -> bool:
        """Read text aloud. Never raises."""
        return self.gateway.speak(text)
