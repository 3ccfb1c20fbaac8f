"""
tests/test_controls.py — Button Custom-ID Codec Tests
======================================================
"""

from __future__ import annotations

import pytest

from lyceum.quiz.controls import (
    ANSWER,
    MAX_CUSTOM_ID_LENGTH,
    START,
    ControlAction,
    encode_answer,
    encode_start,
    parse_custom_id,
)


class TestEncoding:
    def test_start_id(self):
        assert encode_start("quiz_1_abc") == "quiz:start:quiz_1_abc"

    def test_answer_id(self):
        assert encode_answer("quiz_1_abc", 2, 3) == "quiz:answer:quiz_1_abc:2:3"

    def test_ids_fit_discord_limit(self):
        longest = encode_answer("daily_1767225600000_zzzzzzzzz", 9, 3)
        assert len(longest) <= MAX_CUSTOM_ID_LENGTH


class TestParsing:
    def test_parse_start(self):
        assert parse_custom_id("quiz:start:quiz_1_abc") == ControlAction(
            kind=START, session_id="quiz_1_abc",
        )

    def test_parse_answer(self):
        action = parse_custom_id(encode_answer("daily_5_xyz", 1, 0))
        assert action == ControlAction(
            kind=ANSWER, session_id="daily_5_xyz", question_index=1, option_index=0,
        )

    @pytest.mark.parametrize("custom_id", [
        None,
        "",
        "ticket:open:123",
        "quiz:start:",
        "quiz:start:a:b",
        "quiz:answer:s:1",
        "quiz:answer:s:x:1",
        "quiz:answer:s:-1:0",
        "quiz:reveal:s",
    ])
    def test_rejects_foreign_or_malformed(self, custom_id):
        assert parse_custom_id(custom_id) is None
