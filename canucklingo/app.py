"""
CanuckLingo - Flask Web Application

Main entry point for the web application.

Screens:
- Search: explain a term, illustrate it, chat about it, save it
- Notebook: saved terms, story mode
- Flashcards: cyclic review of the notebook
- Story: AI story using every saved term

API Sources:
- Gemini: Explanations, Illustrations, Pronunciation, Chat, Stories
"""

import logging
import re
from pathlib import Path

from flask import Flask, render_template, request, jsonify
from markupsafe import Markup, escape

from .config import VERSION, DATA_DIR, HOST, PORT, LOG_LEVEL
from .controller import (
    ViewController, ChatBusyError, NotEnoughTermsError, UnknownEntryError
)
from .fetchers.gemini_gateway import GeminiGateway
from .fetchers.api_status import get_api_tracker
from .notebook.notebook_store import NotebookStore
from .utils.session import ViewState

logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__,
            template_folder=str(Path(__file__).parent / 'templates'))

# Global instances (lazy loaded)
_store = None
_gateway = None
_controller = None


def get_store():
    """Get or create the notebook store, loading the saved notebook."""
    global _store
    if _store is None:
        _store = NotebookStore()
        logger.info("Loaded %d saved terms", _store.count())
    return _store


def get_gateway():
    """Get or create the Gemini gateway."""
    global _gateway
    if _gateway is None:
        _gateway = GeminiGateway()
    return _gateway


def get_controller():
    """Get or create the view controller."""
    global _controller
    if _controller is None:
        _controller = ViewController(get_gateway(), get_store())
    return _controller


def _render(template, view, **kwargs):
    """Render a screen after switching the session to it."""
    ctrl = get_controller()
    ctrl.navigate(view)
    return render_template(template,
                           active_tab=view.value.lower(),
                           session_state=ctrl.session,
                           notebook=ctrl.store.entries,
                           version=VERSION,
                           **kwargs)


class InvalidRequest(ValueError):
    """Raised when a JSON body is not shaped as the route expects."""


@app.errorhandler(InvalidRequest)
def handle_invalid_request(e):
    return jsonify({'success': False, 'error': str(e)}), 400


def _json_body():
    """Get the request body as a dict; a missing body counts as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest('Request body must be a JSON object')
    return data


def _text_field(data, key):
    """Get an optional string field from a JSON body."""
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidRequest(f"'{key}' must be a string")
    return value


@app.template_filter('bold')
def bold_filter(text):
    """Render **word** markers in a story as bold, escaping everything else."""
    escaped = str(escape(text or ''))
    return Markup(re.sub(r'\*\*(.+?)\*\*', r'<strong>\1</strong>', escaped))


# =============================================================================
# ROUTES - PAGES
# =============================================================================

@app.route('/')
def index():
    """Search page."""
    ctrl = get_controller()
    result = ctrl.session.current_result
    return _render('search.html', ViewState.SEARCH,
                   result=result,
                   is_saved=bool(result and ctrl.is_saved(result.term)))


@app.route('/notebook')
def notebook():
    """Saved terms."""
    return _render('notebook.html', ViewState.NOTEBOOK)


@app.route('/flashcards')
def flashcards():
    """Flashcard review."""
    ctrl = get_controller()
    entry = ctrl.current_card()
    return _render('flashcards.html', ViewState.FLASHCARDS,
                   entry=entry,
                   current=ctrl.session.flashcard_index,
                   total=ctrl.store.count())


@app.route('/story')
def story():
    """Generated story."""
    return _render('story.html', ViewState.STORY,
                   story=get_controller().session.story)


# =============================================================================
# ROUTES - SEARCH
# =============================================================================

@app.route('/api/search', methods=['POST'])
def api_search():
    """Explain and illustrate a term."""
    data = _json_body()
    term = _text_field(data, 'term').strip()
    context = _text_field(data, 'context')

    if not term:
        return jsonify({'success': False, 'error': 'No term specified'})

    ctrl = get_controller()
    entry = ctrl.search(term, context)

    if entry is None:
        return jsonify({
            'success': False,
            'error': ctrl.session.error or 'Search was superseded by a newer one',
            'flowState': ctrl.session.flow_state.value,
        })

    return jsonify({
        'success': True,
        'entry': entry.to_dict(),
        'isSaved': ctrl.is_saved(entry.term),
        'flowState': ctrl.session.flow_state.value,
    })


# =============================================================================
# ROUTES - NOTEBOOK
# =============================================================================

@app.route('/api/notebook')
def api_notebook():
    """List saved entries."""
    store = get_store()
    return jsonify({
        'success': True,
        'count': store.count(),
        'entries': [e.to_dict() for e in store.entries],
    })


@app.route('/api/notebook/toggle', methods=['POST'])
def api_notebook_toggle():
    """Save or unsave a term."""
    term = _text_field(_json_body(), 'term')

    if not term:
        return jsonify({'success': False, 'error': 'No term specified'})

    try:
        saved = get_controller().toggle_save_term(term)
    except UnknownEntryError as e:
        return jsonify({'success': False, 'error': str(e)})

    return jsonify({
        'success': True,
        'term': term,
        'isSaved': saved,
        'count': get_store().count(),
    })


# =============================================================================
# ROUTES - FLASHCARDS
# =============================================================================

def _card_response(entry):
    ctrl = get_controller()
    return jsonify({
        'success': entry is not None,
        'entry': entry.to_dict() if entry else None,
        'current': ctrl.session.flashcard_index,
        'total': ctrl.store.count(),
        'flipped': ctrl.session.flipped,
    })


@app.route('/api/flashcards/next', methods=['POST'])
def api_flashcards_next():
    """Move to the next card."""
    return _card_response(get_controller().next_card())


@app.route('/api/flashcards/prev', methods=['POST'])
def api_flashcards_prev():
    """Move to the previous card."""
    return _card_response(get_controller().prev_card())


@app.route('/api/flashcards/flip', methods=['POST'])
def api_flashcards_flip():
    """Flip the current card."""
    ctrl = get_controller()
    ctrl.flip_card()
    return _card_response(ctrl.current_card())


# =============================================================================
# ROUTES - STORY, CHAT, SPEECH
# =============================================================================

@app.route('/api/story', methods=['POST'])
def api_story():
    """Generate a story from the notebook."""
    try:
        text = get_controller().generate_story()
    except NotEnoughTermsError as e:
        return jsonify({'success': False, 'error': str(e)})

    if text is None:
        return jsonify({'success': False, 'error': 'Could not generate story.'})

    return jsonify({'success': True, 'story': text})


@app.route('/api/chat', methods=['POST'])
def api_chat():
    """Ask a follow-up question about the current result."""
    message = _text_field(_json_body(), 'message').strip()

    if not message:
        return jsonify({'success': False, 'error': 'No message specified'})

    ctrl = get_controller()
    try:
        reply = ctrl.send_chat(message)
    except (UnknownEntryError, ChatBusyError) as e:
        return jsonify({'success': False, 'error': str(e)})

    return jsonify({
        'success': reply is not None,
        'reply': reply,
        'history': [m.to_dict() for m in ctrl.session.chat_history],
    })


@app.route('/api/speak', methods=['POST'])
def api_speak():
    """Read text aloud on this machine."""
    played = get_controller().speak(_text_field(_json_body(), 'text'))
    return jsonify({'success': True, 'played': played})


# =============================================================================
# ROUTES - SESSION AND STATUS
# =============================================================================

@app.route('/api/view', methods=['POST'])
def api_view():
    """Switch the active screen."""
    name = _text_field(_json_body(), 'view')
    try:
        view = ViewState(name.upper())
    except ValueError:
        return jsonify({'success': False, 'error': f"Unknown view: {name}"})

    get_controller().navigate(view)
    return jsonify({'success': True, 'view': view.value})


@app.route('/api/session')
def api_session():
    """Get the session view-state."""
    return jsonify({'success': True, **get_controller().session.to_dict()})


@app.route('/api/status')
def api_status():
    """Get Gemini API status."""
    refresh = request.args.get('refresh') == '1'
    return jsonify({'success': True, **get_api_tracker().get_status(refresh=refresh)})


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Run the application."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    print(f"""
==========================================================
  CanuckLingo v{VERSION}
  Master North American English.
----------------------------------------------------------
  Data directory: {DATA_DIR}
==========================================================
    """)

    print(f"Starting server at http://localhost:{PORT}")
    print("   Press Ctrl+C to stop\n")

    get_store()
    app.run(host=HOST, port=PORT, debug=False, threaded=True)


if __name__ == '__main__':
    main()
