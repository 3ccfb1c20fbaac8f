"""
lyceum.quiz.sources — Question Sources
=======================================

A question source turns ``(topic, count, difficulty)`` into an ordered list
of :class:`~lyceum.quiz.models.Question`.  The contract toward the engine is
"data, never a hard failure": any transport error, malformed reply or parse
error degrades to :data:`FALLBACK_QUESTIONS`.

- :class:`AIQuestionSource`     — OpenAI-compatible chat completions via httpx
- :class:`StaticQuestionSource` — serves a fixed list (offline runs, tests)
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from lyceum.constants import OPTIONS_PER_QUESTION, clamp_question_count
from lyceum.quiz.models import Question

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
REQUEST_TIMEOUT_SECONDS = 30

FALLBACK_QUESTIONS: tuple[Question, ...] = (
    Question(
        text="What is the past tense of 'go'?",
        options=("goed", "went", "gone", "going"),
        correct_index=1,
        explanation="'go' is irregular: its past tense is 'went'.",
    ),
    Question(
        text="Choose the correct sentence:",
        options=(
            "She don't like coffee",
            "She doesn't likes coffee",
            "She doesn't like coffee",
            "She not like coffee",
        ),
        correct_index=2,
        explanation=(
            "Use 'doesn't' with he/she/it and keep the verb in its base form."
        ),
    ),
)

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

_DIFFICULTY_WORDS = {"easy": "easy", "medium": "intermediate", "hard": "advanced"}

SYSTEM_PROMPT = (
    "You are a helpful teaching assistant on a Discord server. "
    "You write clear, accurate quiz questions for language learners."
)

PROMPT_TEMPLATE = """Write {count} multiple-choice questions (MCQ) about: {topic}

Level: {level}

Required format (JSON):
[
  {{
    "question": "Question text",
    "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
    "correct": 0,
    "explanation": "Why the correct answer is right"
  }}
]

Notes:
- Questions must be clear and direct
- Exactly 4 options per question
- "correct" is the index of the right option (0-3)
- Keep the explanation short

Return JSON only, with no extra text."""


class QuestionSource(Protocol):
    async def generate(self, topic: str, count: int, difficulty: str) -> list[Question]:
        ...


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------
class GeneratedQuestion(BaseModel):
    """Shape of one question item in the model's JSON reply."""

    question: str = Field(min_length=1)
    options: list[str]
    correct: int = Field(ge=0, le=OPTIONS_PER_QUESTION - 1)
    explanation: str = ""

    @field_validator("options")
    @classmethod
    def _four_options(cls, value: list[str]) -> list[str]:
        if len(value) != OPTIONS_PER_QUESTION:
            raise ValueError(f"expected {OPTIONS_PER_QUESTION} options, got {len(value)}")
        return [str(v) for v in value]

    def to_question(self) -> Question:
        return Question(
            text=self.question,
            options=tuple(self.options),
            correct_index=self.correct,
            explanation=self.explanation,
        )


def parse_questions(reply: str) -> list[Question]:
    """Extract and validate questions from a raw model reply.

    Invalid items are dropped.  Raises ``ValueError`` when the reply holds no
    JSON array at all.
    """
    match = _JSON_ARRAY_RE.search(reply)
    if match is None:
        raise ValueError("No JSON array found in model reply")

    items = json.loads(match.group(0))
    if not isinstance(items, list):
        raise ValueError("Model reply JSON is not a list")

    questions: list[Question] = []
    for position, item in enumerate(items):
        try:
            questions.append(GeneratedQuestion.model_validate(item).to_question())
        except ValidationError as exc:
            logger.warning("Dropping malformed generated question #%d: %s", position, exc)
    return questions


def fallback_questions() -> list[Question]:
    return list(FALLBACK_QUESTIONS)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------
class AIQuestionSource:
    """Generates questions with an OpenAI-compatible chat-completions API.

    Reads ``AI_API_KEY``, ``AI_MODEL`` and ``AI_BASE_URL`` from the
    environment unless given explicitly.  Without a key it serves the
    fallback pair.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.getenv("AI_API_KEY", "")
        self.model = model or os.getenv("AI_MODEL") or DEFAULT_MODEL
        self.base_url = (base_url or os.getenv("AI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport

    def build_prompt(self, topic: str, count: int, difficulty: str) -> str:
        return PROMPT_TEMPLATE.format(
            count=count,
            topic=topic,
            level=_DIFFICULTY_WORDS.get(difficulty, _DIFFICULTY_WORDS["medium"]),
        )

    async def _complete(self, prompt: str) -> str:
        transport = self._transport or httpx.AsyncHTTPTransport(retries=1)
        async with httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT_SECONDS, transport=transport
        ) as client:
            resp = await client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    "max_tokens": 1500,
                    "temperature": 0.8,
                },
            )
            resp.raise_for_status()
            data = resp.json()

        usage = data.get("usage") or {}
        logger.info("AI question generation — tokens: %s", usage.get("total_tokens", "N/A"))
        return data["choices"][0]["message"]["content"].strip()

    async def generate(self, topic: str, count: int, difficulty: str) -> list[Question]:
        count = clamp_question_count(count)
        if not self.api_key:
            logger.warning("AI_API_KEY is not set — serving fallback quiz questions")
            return fallback_questions()

        try:
            reply = await self._complete(self.build_prompt(topic, count, difficulty))
            questions = parse_questions(reply)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "AI question request rejected (HTTP %d) — using fallback questions",
                exc.response.status_code,
            )
            return fallback_questions()
        except Exception:
            logger.exception("AI question generation failed — using fallback questions")
            return fallback_questions()

        if not questions:
            logger.warning("AI reply held no valid questions — using fallback questions")
            return fallback_questions()

        logger.info(
            "Generated %d/%d questions on %r (%s)", len(questions), count, topic, difficulty
        )
        return questions


class StaticQuestionSource:
    """Serves the same question list for every request."""

    def __init__(self, questions: list[Question] | tuple[Question, ...]) -> None:
        self.questions = list(questions)

    async def generate(self, topic: str, count: int, difficulty: str) -> list[Question]:
        return list(self.questions)
