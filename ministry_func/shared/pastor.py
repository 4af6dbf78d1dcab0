"""Answers to visitor questions from the "Pastor AIden" assistant."""

from __future__ import annotations

from typing import Any

from .generation import GenerationClient
from .logging_utils import get_json_logger
from .validators import ValidationError, clean_text

MAX_QUESTION_CHARS = 2000

PASTOR_SYSTEM_PROMPT = (
    "You are Pastor AIden, an AI assistant for the Maryland Baptist Digital Ministry. Your theology is "
    "strictly aligned with Southern Baptist beliefs, using the King James Version for all scripture. "
    "Provide a compassionate, biblically-sound answer of 2-4 paragraphs. You are not a counselor: do not "
    "give medical, financial, or psychological advice. If the question involves a crisis (abuse, "
    "self-harm), your ONLY response must be to provide the 988 Suicide & Crisis Lifeline and advise the "
    "person to seek immediate professional help."
)


class PastorAssistant:
    def __init__(self, generator: GenerationClient) -> None:
        self.generator = generator
        self._logger = get_json_logger("ministry.pastor")

    def answer(self, question: Any) -> str:
        question = clean_text(question)
        if not question:
            raise ValidationError("Question is required.")
        if len(question) > MAX_QUESTION_CHARS:
            raise ValidationError(f"Question must be at most {MAX_QUESTION_CHARS} characters.")

        self._logger.info("Question received", extra={"event": "ask_pastor", "question_len": len(question)})
        return self.generator.generate_text(
            f'User question: "{question}"',
            system=PASTOR_SYSTEM_PROMPT,
            temperature=0.7,
            purpose="ask_pastor",
        )
