import asyncio
import copy
import io
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add backend to sys.path so we can import app
BACKEND_PATH = Path(__file__).resolve().parent.parent / "backend"
if BACKEND_PATH.as_posix() not in sys.path:
    sys.path.insert(0, BACKEND_PATH.as_posix())

import fitz  # noqa: E402
from openpyxl import Workbook  # noqa: E402

from app.models.user import ActorContext  # noqa: E402


# ============== IN-MEMORY MOTOR DOUBLE ==============

def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        actual = doc.get(key)
        if isinstance(expected, dict):
            if "$in" in expected and actual not in expected["$in"]:
                return False
            if "$ne" in expected and actual == expected["$ne"]:
                return False
        elif actual != expected:
            return False
    return True


def _project(doc: dict, projection) -> dict:
    doc = copy.deepcopy(doc)
    if projection and projection.get("_id") == 0:
        doc.pop("_id", None)
    return doc


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key) or "", reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return self._docs[:length] if length else list(self._docs)


class FakeCollection:
    """Subset of AsyncIOMotorCollection used by the app."""

    def __init__(self):
        self.docs = []
        self._next_id = 1

    async def insert_one(self, doc):
        doc["_id"] = self._next_id
        self._next_id += 1
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query or {})])

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        return self._collections.setdefault(name, FakeCollection())

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


# ============== FIXTURES ==============

@pytest.fixture(autouse=True)
def no_provider_credentials(monkeypatch):
    """Tests opt in to AI availability explicitly."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def teacher():
    return ActorContext(user_id="user_teacher_1", role="teacher", email="teacher@example.com")


@pytest.fixture
def other_teacher():
    return ActorContext(user_id="user_teacher_2", role="teacher", email="other@example.com")


@pytest.fixture
def admin():
    return ActorContext(user_id="user_admin_1", role="admin", email="admin@example.com")


def run(coro):
    return asyncio.run(coro)


def make_pdf(*pages: str) -> bytes:
    """PDF with one page per string, text laid out line by line."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


def make_xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def sample_paper_text():
    return "\n".join([
        "INSTRUCTIONS",
        "Read all questions carefully.",
        "1. What is 2 + 2?",
        "A) 3",
        "B) 4",
        "C) 5",
        "D) 6",
        "2. Which planet is known as the red planet?",
        "A) Venus",
        "B) Mars",
        "C) Jupiter",
        "D) Saturn",
    ])


# ============== CHAT MODEL STUB ==============

class StubChat:
    """Stands in for LlmChat; records prompts and replays a canned response."""

    instances = []

    def __init__(self, api_key="", session_id="", system_message="", response="", delay=0.0, error=None):
        self.api_key = api_key
        self.system_message = system_message
        self.response = response
        self.delay = delay
        self.error = error
        self.messages = []
        StubChat.instances.append(self)

    def with_model(self, provider, model_name):
        self.model = (provider, model_name)
        return self

    def with_params(self, **kwargs):
        self.params = kwargs
        return self

    async def send_message(self, message):
        self.messages.append(message.text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


def stub_factory(response, delay=0.0, error=None):
    StubChat.instances = []

    def factory(**kwargs):
        return StubChat(response=response, delay=delay, error=error, **kwargs)
    return factory
