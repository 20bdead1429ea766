"""Translate-then-proofread loop for one block of text.

The oracle first translates the block, then proofreads its own output until
it scores the translation at or above the correctness threshold or the
proofreading budget runs out. Every proofreading round receives the full
history of earlier rounds so a rejected wording is not proposed again.
"""

import json
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from md_translator import prompts
from md_translator.config import (
    DEFAULT_CORRECTNESS_THRESHOLD,
    DEFAULT_SOURCE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    MAX_LLM_ATTEMPTS,
    MAX_PROOFREAD_ATTEMPTS,
)
from md_translator.context import RunContext
from md_translator.errors import OracleExhaustedError, OracleResponseError
from md_translator.llm import Oracle

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class TranslationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_target_language: bool = Field(alias="isTargetLanguage")
    translated_text: str = Field(default="", alias="translatedText")
    note: Optional[str] = None


class ProofreadResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    corrected_text: str = Field(alias="correctedText")
    correctness: float = Field(ge=0.0, le=1.0)
    note: Optional[str] = None


class TranslationState(str, Enum):
    NOT_STARTED = "not_started"
    TRANSLATED = "translated"
    PROOFREADING = "proofreading"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Attempt:
    candidate_text: str
    score: float
    critique: str


class TranslationSession:
    """State of one block's translation, independent of any oracle."""

    def __init__(self, source_text: str, threshold: float, max_attempts: int = MAX_PROOFREAD_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.source_text = source_text
        self.threshold = threshold
        self.max_attempts = max_attempts
        self.state = TranslationState.NOT_STARTED
        self.history: List[Attempt] = []
        self.candidate: Optional[str] = None

    def _expect(self, *states: TranslationState) -> None:
        if self.state not in states:
            raise RuntimeError(f"invalid transition from {self.state.value}")

    @property
    def done(self) -> bool:
        return self.state in (TranslationState.ACCEPTED, TranslationState.EXHAUSTED)

    def already_target_language(self) -> None:
        # nothing to translate; an empty result tells the caller to keep the source
        self._expect(TranslationState.NOT_STARTED)
        self.candidate = ""
        self.state = TranslationState.ACCEPTED

    def translated(self, text: str) -> None:
        self._expect(TranslationState.NOT_STARTED)
        self.candidate = text
        self.state = TranslationState.TRANSLATED

    def next_review(self) -> List[Attempt]:
        """Enter a proofreading round; returns the history to show the oracle."""
        self._expect(TranslationState.TRANSLATED, TranslationState.PROOFREADING)
        self.state = TranslationState.PROOFREADING
        return list(self.history)

    def record(self, attempt: Attempt, corrected_text: str) -> TranslationState:
        """Log the review of the current candidate and move on to its correction."""
        self._expect(TranslationState.PROOFREADING)
        self.history.append(attempt)
        self.candidate = corrected_text
        if attempt.score >= self.threshold:
            self.state = TranslationState.ACCEPTED
        elif len(self.history) >= self.max_attempts:
            self.state = TranslationState.EXHAUSTED
        return self.state

    def result(self) -> str:
        if not self.done:
            raise RuntimeError(f"translation is not finished ({self.state.value})")
        return self.candidate


class ProofreadTranslator:
    def __init__(
        self,
        oracle: Oracle,
        review_oracle: Optional[Oracle] = None,
        threshold: float = DEFAULT_CORRECTNESS_THRESHOLD,
        max_attempts: int = MAX_PROOFREAD_ATTEMPTS,
        max_llm_attempts: int = MAX_LLM_ATTEMPTS,
        source_language: str = DEFAULT_SOURCE_LANGUAGE,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
    ):
        self.oracle = oracle
        self.review_oracle = review_oracle or oracle
        self.threshold = threshold
        self.max_attempts = max_attempts
        self.max_llm_attempts = max_llm_attempts
        self.source_language = source_language
        self.target_language = target_language

    def _call(
        self,
        oracle: Oracle,
        system_prompt: str,
        user_prompt: str,
        variables: Dict[str, Any],
        model: Type[ResultT],
        check: Optional[Callable[[ResultT], None]] = None,
    ) -> ResultT:
        last_error: Optional[Exception] = None
        for attempt_num in range(1, self.max_llm_attempts + 1):
            try:
                result = model.model_validate(oracle.complete(system_prompt, user_prompt, variables))
                if check:
                    check(result)
                return result
            except (OracleResponseError, ValidationError) as e:
                last_error = e
                logger.warning(f"Oracle call attempt {attempt_num}/{self.max_llm_attempts} ({model.__name__}) failed: {e}")
        raise OracleExhaustedError(
            f"{model.__name__} call failed after {self.max_llm_attempts} attempts: {last_error}",
            attempts=self.max_llm_attempts,
            last_error=last_error,
        )

    @staticmethod
    def _check_translation(result: TranslationResult) -> None:
        if not result.is_target_language and not result.translated_text.strip():
            raise OracleResponseError("translation result is empty")

    def translate(self, ctx: RunContext, context_text: str, block_text: str, is_heading: bool) -> str:
        """Translate ``block_text``; an empty string means it needs no translation."""
        logger.debug(f"Translating block of {ctx.file} (heading={is_heading}): {block_text[:80]!r}")
        variables: Dict[str, Any] = {
            "source_language": self.source_language,
            "target_language": self.target_language,
            "document_name": ctx.document_name,
            "context_text": context_text,
            "block_text": block_text,
            "heading_note": prompts.HEADING_NOTE if is_heading else "",
        }
        session = TranslationSession(block_text, self.threshold, self.max_attempts)

        translation = self._call(
            self.oracle,
            prompts.TRANSLATE_SYSTEM_PROMPT,
            prompts.TRANSLATE_USER_PROMPT,
            variables,
            TranslationResult,
            check=self._check_translation,
        )
        if translation.is_target_language:
            logger.debug(f"Block is already in {self.target_language}, keeping it as is.")
            session.already_target_language()
            return session.result()
        session.translated(translation.translated_text)

        while not session.done:
            history = session.next_review()
            review = self._call(
                self.review_oracle,
                prompts.PROOFREAD_SYSTEM_PROMPT,
                prompts.PROOFREAD_USER_PROMPT,
                dict(variables, candidate_text=session.candidate, history=prompts.format_history(history)),
                ProofreadResult,
            )
            session.record(Attempt(session.candidate, review.correctness, review.note or ""), review.corrected_text)

        if session.state == TranslationState.EXHAUSTED:
            logger.warning(
                f"Correctness threshold {self.threshold} not reached after {len(session.history)} proofreads, "
                f"using the last candidate.\noriginal: {block_text}\nhistory: "
                f"{json.dumps([asdict(a) for a in session.history], ensure_ascii=False, indent=2)}"
            )
        else:
            logger.info(
                f"Translation accepted after {len(session.history)} proofread(s) "
                f"(correctness {session.history[-1].score:.2f}) for {ctx.file}"
            )
        return session.result()
