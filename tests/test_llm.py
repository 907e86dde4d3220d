"""Tests for deadline_intake.core.llm — provider selection and routing."""

from unittest.mock import AsyncMock, patch

import pytest

from deadline_intake.config import settings
from deadline_intake.core import llm


@pytest.fixture(autouse=True)
def reset_provider(monkeypatch):
    monkeypatch.setattr(llm, "_provider_fn", None)
    monkeypatch.setattr(llm, "_model", "")
    monkeypatch.setattr(llm, "_api_key", "")


class TestSelectProvider:
    def test_unknown_provider(self):
        with patch.object(settings, "LLM_PROVIDER", "bogus"):
            with pytest.raises(ValueError, match="Unknown LLM_PROVIDER"):
                llm._select_provider()

    def test_missing_api_key(self):
        with patch.object(settings, "LLM_API_KEY", ""):
            with pytest.raises(ValueError, match="LLM_API_KEY"):
                llm._select_provider()

    def test_default_model_per_provider(self):
        with patch.object(settings, "LLM_PROVIDER", "openai"), \
             patch.object(settings, "LLM_MODEL", ""):
            fn, model, _ = llm._select_provider()
        assert fn is llm._complete_openai
        assert model == "gpt-4o-mini"


class TestComplete:
    @pytest.mark.asyncio
    async def test_routes_to_provider(self):
        fake = AsyncMock(return_value='{"suggestions": []}')
        with patch.dict(llm._PROVIDERS, {"gemini": (fake, "default-model")}), \
             patch.object(settings, "LLM_PROVIDER", "gemini"), \
             patch.object(settings, "LLM_MODEL", ""):
            text = await llm.complete("system", "user", max_tokens=10, temperature=0.2)
        assert text == '{"suggestions": []}'
        fake.assert_awaited_once_with(
            settings.LLM_API_KEY, "default-model", "system", "user", 10, 0.2,
        )

    @pytest.mark.asyncio
    async def test_model_override(self):
        fake = AsyncMock(return_value="{}")
        with patch.dict(llm._PROVIDERS, {"gemini": (fake, "default-model")}), \
             patch.object(settings, "LLM_PROVIDER", "gemini"), \
             patch.object(settings, "LLM_MODEL", ""):
            await llm.complete("system", "user", model="special-model")
        assert fake.await_args.args[1] == "special-model"
