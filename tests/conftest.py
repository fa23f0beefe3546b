"""Shared fixtures: a scripted LLM provider and in-memory storage"""

import inspect
import json
import random
from collections import defaultdict, deque
from typing import Any, Dict, List, Optional

import pytest

from noirplan.llm import GenerationGateway, LLMMessage, LLMProvider, LLMResponse
from noirplan.memory import DocumentStore, InMemoryState
from noirplan.models import Character
from noirplan.orchestrator import MysterySession, PipelineSettings


CONCEPT = {
    "title": "Death at Ravenscourt",
    "victim": "Lord Ashby, the ailing patriarch",
    "atmosphere": "A storm-lashed manor on the moors",
    "incident": "Lord Ashby was found dead in the library after drinking his nightly brandy.",
    "parties": "The Ashby family and their household staff",
    "twist": "The power fails and a second will is found.",
}

CAST = {
    "suspects": [
        {"id": "c1", "name": "Lady Ashby", "gender": "Female", "archetype": "The Widow", "initial_motive": "Inheritance"},
        {"id": "c2", "name": "Colonel Grey", "gender": "MALE", "archetype": "The Soldier", "initial_motive": "Old debts"},
        {"id": "c3", "name": "Nurse Price", "gender": "female", "archetype": "The Caregiver", "initial_motive": "Revenge"},
    ]
}

RECAST = {"name": "Father Quill", "gender": "male", "archetype": "The Priest", "initial_motive": "A broken vow"}

TIMELINE = "7:00 PM - Guests arrive.\n8:15 PM - Lord Ashby retires to the library.\n9:00 PM - The body is found."

CLUES = {
    "clues": [
        {"id": f"k{i}", "name": f"Clue {i}", "description": "A printed note", "location_to_hide": "Desk drawer", "relevance": "Places a guest in the library"}
        for i in range(1, 7)
    ]
}

DOSSIER = {
    "pre_game_blurb": "Dress in mourning black.",
    "background": "Married into the family twenty years ago.",
    "relationships": "Distrusts the Colonel.",
    "connection_to_victim": "His wife.",
    "round1": {
        "public_info": ["Saw the Colonel near the library at 8:20 PM."],
        "private_info": ["You left the sleeping draught beside his brandy."],
    },
    "round2": {
        "public_info": ["The new will names the nurse."],
        "private_info": ["You knew about the second will."],
    },
}

AUDIT = {
    "is_valid": False,
    "issues": [
        {"id": "T1", "description": "The Colonel is in two rooms at 8:20 PM.", "suggestion": "Move him."},
        {"id": "T2", "description": "Nobody could have seen the brandy being poured.", "suggestion": "Add a witness."},
    ],
    "notes": "Two timing problems.",
}

COVERAGE = {
    "beats": [
        {"beat_name": "The poisoned brandy", "description": "How the poison got in", "clues": ["Clue 1", "Clue 2", "Clue 3"]},
        {"beat_name": "The second will", "description": "Who benefits", "clues": ["Clue 4"]},
    ]
}

RESOLVE = {"timeline": "Revised timeline T2", "summary": "S"}

DEFAULT_RESPONSES = {
    "concept": json.dumps(CONCEPT),
    "refine_concept": json.dumps({**CONCEPT, "title": "Death at Ravenscourt, Revised"}),
    "casting": json.dumps(CAST),
    "recast": json.dumps(RECAST),
    "timeline": TIMELINE,
    "clues": json.dumps(CLUES),
    "dossier": json.dumps(DOSSIER),
    "audit": json.dumps(AUDIT),
    "coverage": json.dumps(COVERAGE),
    "resolve": json.dumps(RESOLVE),
}


class FakeProvider(LLMProvider):
    """
    Scripted provider keyed by generation kind.

    Scripted items are consumed in order: response text, an exception to
    raise, or a callable run at call time that returns the text (or an
    awaitable of it). Once a
    kind's script runs out, its default response is returned.
    """

    def __init__(self, responses: Optional[Dict[str, str]] = None):
        self.responses = {**DEFAULT_RESPONSES, **(responses or {})}
        self.scripts: Dict[str, deque] = defaultdict(deque)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def script(self, kind: str, *items):
        self.scripts[kind].extend(items)

    def calls_for(self, kind: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["kind"] == kind]

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        kind = kwargs.get("generation_kind")
        self.calls.append({"kind": kind, "messages": messages, "kwargs": kwargs})

        item = self.scripts[kind].popleft() if self.scripts[kind] else self.responses[kind]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            item = item()
            if inspect.isawaitable(item):
                item = await item
        return LLMResponse(content=item, model="fake")

    def get_model_name(self) -> str:
        return "fake"

    async def close(self):
        self.closed = True


class RecordingSleep:
    """Awaitable sleep that records delays instead of waiting"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def backoff_sleep():
    return RecordingSleep()


@pytest.fixture
def spacing_sleep():
    return RecordingSleep()


@pytest.fixture
def gateway(provider, backoff_sleep):
    return GenerationGateway(provider, sleep=backoff_sleep)


@pytest.fixture
def state():
    return InMemoryState()


@pytest.fixture
def store(state):
    return DocumentStore(state)


@pytest.fixture
def settings():
    return PipelineSettings()


@pytest.fixture
def session(store, gateway, settings, spacing_sleep):
    return MysterySession(store, gateway, settings, rng=random.Random(7), sleep=spacing_sleep)


@pytest.fixture
def cast_store(store):
    """Store holding a concept, three unfleshed suspects, roles, timeline and clues"""
    store.update({
        "title": CONCEPT["title"],
        "victim_name": CONCEPT["victim"],
        "core_story": CONCEPT["incident"],
        "twist": CONCEPT["twist"],
        "characters": [
            Character(
                id=s["id"],
                name=s["name"],
                gender=s["gender"],
                archetype=s["archetype"],
                initial_motive=s["initial_motive"]
            )
            for s in CAST["suspects"]
        ],
        "killer_id": "c1",
        "saboteur_id": "c2",
        "timeline": TIMELINE,
        "clues": CLUES["clues"],
    })
    return store
