"""
Unit tests for the AI helpers.

The model is never called: tests either run without an API key (fallback
paths) or patch ``_run_prompt``, ``_ask_for_tags`` or the agent getters.
"""

from typing import List
from unittest.mock import AsyncMock, patch

import pytest

from indaba.core import ai


class TestTagNormalizing:
    def test_keeps_clean_tags_in_order(self):
        assert ai.normalize_tags(["fine motor", "drawing", "focus"]) == ["fine motor", "drawing", "focus"]

    def test_drops_blank_and_duplicate_tags(self):
        assert ai.normalize_tags([" fine motor ", " ", "", "Fine Motor", "drawing"]) == ["fine motor", "drawing"]

    def test_caps_at_five(self):
        tags = ["a", "b", "c", "d", "e", "f", "g"]

        assert ai.normalize_tags(tags) == ["a", "b", "c", "d", "e"]

    def test_default_tags(self):
        assert ai.default_observation_tags("PHOTO") == ["observation", "photo"]


class TestFallbacks:
    @pytest.mark.asyncio
    async def test_tags_without_api_key(self):
        with patch.object(ai, "is_ai_available", return_value=False):
            tags = await ai.generate_observation_tags("Built a tower", "TEXT")

        assert tags == ["observation", "text"]

    @pytest.mark.asyncio
    async def test_tags_when_call_fails(self):
        with patch.object(ai, "is_ai_available", return_value=True), patch.object(
            ai, "_ask_for_tags", AsyncMock(return_value=None)
        ):
            tags = await ai.generate_observation_tags("Built a tower", "TEXT")

        assert tags == ["observation", "text"]

    @pytest.mark.asyncio
    async def test_tags_from_model_answer(self):
        answer = ["building", "fine motor", "focus", "Building", "stacking", "patience", "counting"]
        with patch.object(ai, "is_ai_available", return_value=True), patch.object(
            ai, "_ask_for_tags", AsyncMock(return_value=answer)
        ) as ask:
            tags = await ai.generate_observation_tags("Built a tower", "TEXT")

        assert tags == ["building", "fine motor", "focus", "stacking", "patience"]
        prompt = ask.await_args.args[0]
        assert "Built a tower" in prompt
        assert "TEXT" in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", [[], ["music"], ["music", " ", "MUSIC", "rhythm"]])
    async def test_tags_fall_back_below_three(self, answer):
        with patch.object(ai, "is_ai_available", return_value=True), patch.object(
            ai, "_ask_for_tags", AsyncMock(return_value=answer)
        ):
            assert await ai.generate_observation_tags("x", "AUDIO") == ["observation", "audio"]

    def test_fallback_summary_uses_first_sentence(self):
        summary = ai.fallback_summary(
            [("Nora", "Kim napped well. Then we went to the park."), ("Paula", "Thanks! See you tomorrow.")]
        )

        assert summary == "Nora: Kim napped well.\nPaula: Thanks!"

    @pytest.mark.asyncio
    async def test_summary_of_nothing_is_empty(self):
        assert await ai.summarize_messages([], "Kim") == ""

    @pytest.mark.asyncio
    async def test_summary_without_api_key(self):
        with patch.object(ai, "is_ai_available", return_value=False):
            summary = await ai.summarize_messages([("Nora", "Kim ate lunch.")], "Kim")

        assert summary == "Nora: Kim ate lunch."

    @pytest.mark.asyncio
    async def test_summary_from_model(self):
        with patch.object(ai, "is_ai_available", return_value=True), patch.object(
            ai, "_run_prompt", AsyncMock(return_value="  Kim had a calm day.  ")
        ) as run:
            summary = await ai.summarize_messages([("Nora", "Kim ate lunch.")], "Kim")

        assert summary == "Kim had a calm day."
        assert "Kim" in run.await_args.args[0]
        assert run.await_args.args[1] == "message_summary"

    @pytest.mark.asyncio
    async def test_summary_falls_back_when_call_fails(self):
        with patch.object(ai, "is_ai_available", return_value=True), patch.object(
            ai, "_run_prompt", AsyncMock(return_value=None)
        ):
            summary = await ai.summarize_messages([("Nora", "Kim ate lunch. Then slept.")], "Kim")

        assert summary == "Nora: Kim ate lunch."


class TestRunPrompt:
    @pytest.mark.asyncio
    async def test_run_prompt_returns_output(self):
        agent = AsyncMock()
        agent.run.return_value.output = "answer"
        with patch.object(ai, "_get_agent", return_value=agent), patch.object(ai, "log_ai_call") as log_call:
            assert await ai._run_prompt("prompt", "observation_tags") == "answer"

        assert log_call.call_args.kwargs["ok"] is True

    @pytest.mark.asyncio
    async def test_run_prompt_swallows_model_errors(self):
        agent = AsyncMock()
        agent.run.side_effect = RuntimeError("rate limited")
        with patch.object(ai, "_get_agent", return_value=agent), patch.object(ai, "log_ai_call") as log_call:
            assert await ai._run_prompt("prompt", "observation_tags") is None

        assert log_call.call_args.kwargs["ok"] is False

    @pytest.mark.asyncio
    async def test_tags_come_back_as_a_list(self):
        agent = AsyncMock()
        agent.run.return_value.output = ["music", "rhythm", "listening"]
        with patch.object(ai, "_get_tag_agent", return_value=agent), patch.object(ai, "log_ai_call") as log_call:
            assert await ai._ask_for_tags("prompt") == ["music", "rhythm", "listening"]

        assert log_call.call_args.args[0] == "observation_tags"

    def test_tag_agent_asks_for_a_list_of_strings(self):
        ai._get_tag_agent.cache_clear()
        try:
            with patch.object(ai, "_get_model", return_value="model"), patch.object(ai, "Agent") as agent_cls:
                ai._get_tag_agent()
        finally:
            ai._get_tag_agent.cache_clear()

        assert agent_cls.call_args.args == ("model",)
        assert agent_cls.call_args.kwargs["output_type"] == List[str]
