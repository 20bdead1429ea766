"""
Shared fixtures: a scripted oracle, a whitespace token counter and run contexts.
"""

from typing import Any, Dict, List

import pytest

from md_translator import context, prompts
from md_translator.context import RunContext


def word_count(text: str) -> int:
    return len(text.split())


class ScriptedOracle:
    """Stub oracle answering from queued responses and recording every call.

    Queued entries may be a response dict, an exception to raise, or a float
    (proofread only) meaning "keep the candidate, with this correctness".
    Once a queue is empty, translations prefix the block with ``[ja]`` and
    proofreads accept the candidate with correctness 1.0.
    """

    def __init__(self, translations=None, reviews=None):
        self.translations: List[Any] = list(translations or [])
        self.reviews: List[Any] = list(reviews or [])
        self.calls: List[Dict[str, Any]] = []

    def complete(self, system_prompt: str, user_prompt: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        kind = "translate" if system_prompt == prompts.TRANSLATE_SYSTEM_PROMPT else "proofread"
        self.calls.append({"kind": kind, "variables": dict(variables)})
        if kind == "translate":
            response = self.translations.pop(0) if self.translations else None
            if response is None:
                response = {"isTargetLanguage": False, "translatedText": f"[ja] {variables['block_text']}", "note": ""}
        else:
            response = self.reviews.pop(0) if self.reviews else 1.0
            if isinstance(response, float):
                response = {"correctedText": variables["candidate_text"], "correctness": response, "note": ""}
        if isinstance(response, Exception):
            raise response
        return response

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call["kind"] == kind)

    def of_kind(self, kind: str) -> List[Dict[str, Any]]:
        return [call["variables"] for call in self.calls if call["kind"] == kind]


class RecordingMemory:
    def __init__(self):
        self.entries = []

    def save(self, entry):
        self.entries.append(entry)


class FakeEncoding:
    def encode(self, text, disallowed_special=()):
        return text.split()


@pytest.fixture
def oracle():
    return ScriptedOracle()


@pytest.fixture
def ctx():
    return RunContext(file="intro.md")


@pytest.fixture
def memory():
    return RecordingMemory()


@pytest.fixture
def fake_tokenizer(monkeypatch):
    """Keeps tiktoken (and its encoding download) out of the tests."""
    monkeypatch.setattr(context, "_get_encoding", lambda model_name: FakeEncoding())
