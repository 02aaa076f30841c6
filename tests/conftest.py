from __future__ import annotations

from types import SimpleNamespace

import pytest

from canucklingo import app as app_module
from canucklingo.controller import ViewController
from canucklingo.fetchers.gemini_gateway import Explanation, GeminiGateway
from canucklingo.notebook.notebook_store import Entry, Example, NotebookStore


def text_response(text):
    return SimpleNamespace(text=text, candidates=[])


def inline_response(data, mime_type="image/png"):
    part = SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    content = SimpleNamespace(parts=[part])
    return SimpleNamespace(text=None, candidates=[SimpleNamespace(content=content)])


class FakeModels:
    """Stands in for client.models; answers per model name."""

    def __init__(self):
        self.calls = []
        self.responses = {}

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses[kwargs["model"]]
        if isinstance(response, Exception):
            raise response
        return response


class FakeChat:
    def __init__(self, reply):
        self.reply = reply
        self.sent = []

    def send_message(self, message):
        self.sent.append(message)
        return text_response(self.reply)


class FakeChats:
    def __init__(self):
        self.created = []
        self.reply = "Sure thing!"

    def create(self, **kwargs):
        chat = FakeChat(self.reply)
        self.created.append((kwargs, chat))
        return chat


class FakeClient:
    def __init__(self):
        self.models = FakeModels()
        self.chats = FakeChats()


class FakePlayer:
    def __init__(self):
        self.played = []

    def play(self, pcm):
        self.played.append(pcm)
        return True


def make_explanation(**overrides):
    fields = dict(
        definitionEnglish="A knitted winter hat.",
        definitionMandarin="冬天戴的针织帽。",
        examples=[Example(english="Grab your toque, eh?", mandarin="戴上你的毛线帽吧。")],
        usageNote="Super Canadian. Americans say beanie.",
        imagePrompt="a red knitted winter hat",
    )
    fields.update(overrides)
    return Explanation(**fields)


def make_entry(term, **overrides):
    entry = Entry.create(term, make_explanation(), context=overrides.pop("context", ""))
    for name, value in overrides.items():
        setattr(entry, name, value)
    return entry


class FakeGateway:
    """Gateway double for controller and route tests."""

    def __init__(self):
        self.explanation = make_explanation()
        self.explain_error = None
        self.image = "data:image/png;base64,aW1n"
        self.story = "Once upon a **toque**..."
        self.story_error = None
        self.reply = "It's pretty casual."
        self.chat_error = None
        self.calls = []
        self.on_explain = None
        self.on_converse = None

    def explain(self, term, context=None):
        self.calls.append(("explain", term, context))
        if self.on_explain:
            self.on_explain(term)
        if self.explain_error:
            raise self.explain_error
        return self.explanation

    def illustrate(self, prompt):
        self.calls.append(("illustrate", prompt))
        return self.image

    def speak(self, text):
        self.calls.append(("speak", text))
        return bool(text)

    def converse(self, history, message, term):
        self.calls.append(("converse", [(m.role, m.text) for m in history], message, term))
        if self.on_converse:
            self.on_converse(message)
        if self.chat_error:
            raise self.chat_error
        return self.reply

    def narrate(self, terms):
        self.calls.append(("narrate", list(terms)))
        if self.story_error:
            raise self.story_error
        return self.story


@pytest.fixture
def notebook_path(tmp_path):
    return tmp_path / "canucklingo_notebook.json"


@pytest.fixture
def store(notebook_path):
    return NotebookStore(str(notebook_path))


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_player():
    return FakePlayer()


@pytest.fixture
def gateway(fake_client, fake_player):
    return GeminiGateway(api_key="test-key", client=fake_client, player=fake_player)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def controller(fake_gateway, store):
    return ViewController(fake_gateway, store)


@pytest.fixture
def client(monkeypatch, controller, store, fake_gateway):
    monkeypatch.setattr(app_module, "_store", store)
    monkeypatch.setattr(app_module, "_gateway", fake_gateway)
    monkeypatch.setattr(app_module, "_controller", controller)
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as test_client:
        yield test_client
