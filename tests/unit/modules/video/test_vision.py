"""Moderation, description and prompt refinement tests."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from src.modules.video.vision import FALLBACK_DESCRIPTION, VisionService
from src.utils.settings.vision import VisionSettings


def completion(content: str | None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


@pytest.fixture
def client():
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock()
    return openai_client


@pytest.fixture
def vision(client):
    return VisionService(VisionSettings(NSFW_CHECK_ENABLED=True), client=client)


class TestCheckNSFW:
    @pytest.mark.asyncio
    async def test_flagged_image(self, vision, client):
        client.chat.completions.create.return_value = completion(
            json.dumps({"is_nsfw": True, "reason": "nudity"})
        )

        result = await vision.check_nsfw("aGVsbG8=")

        assert result.is_nsfw
        assert result.reason == "nudity"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_camel_case_key(self, vision, client):
        client.chat.completions.create.return_value = completion('{"isNSFW": true}')

        assert (await vision.check_nsfw("aGVsbG8=")).is_nsfw

    @pytest.mark.asyncio
    async def test_safe_image(self, vision, client):
        client.chat.completions.create.return_value = completion('{"is_nsfw": false}')

        assert not (await vision.check_nsfw("aGVsbG8=")).is_nsfw

    @pytest.mark.asyncio
    async def test_moderation_outage_fails_open(self, vision, client):
        client.chat.completions.create.side_effect = openai.OpenAIError("down")

        result = await vision.check_nsfw("aGVsbG8=")

        assert not result.is_nsfw

    @pytest.mark.asyncio
    async def test_unparseable_reply_fails_open(self, vision, client):
        client.chat.completions.create.return_value = completion("not json")

        assert not (await vision.check_nsfw("aGVsbG8=")).is_nsfw

    @pytest.mark.asyncio
    async def test_disabled(self, client):
        vision = VisionService(VisionSettings(NSFW_CHECK_ENABLED=False), client=client)

        assert not (await vision.check_nsfw("aGVsbG8=")).is_nsfw
        client.chat.completions.create.assert_not_awaited()


class TestPromptPipeline:
    @pytest.mark.asyncio
    async def test_describe_image(self, vision, client):
        client.chat.completions.create.return_value = completion("  A dog on a beach ")

        assert await vision.describe_image("aGVsbG8=") == "A dog on a beach"

    @pytest.mark.asyncio
    async def test_describe_image_fallback(self, vision, client):
        client.chat.completions.create.side_effect = openai.OpenAIError("down")

        assert await vision.describe_image("aGVsbG8=") == FALLBACK_DESCRIPTION

    @pytest.mark.asyncio
    async def test_refine_prompt(self, vision, client):
        client.chat.completions.create.return_value = completion(
            "A golden retriever sprints along the shore at sunset"
        )

        refined = await vision.refine_prompt("perro corriendo", "A dog on a beach")

        assert refined.startswith("A golden retriever")
        user_message = client.chat.completions.create.await_args.kwargs["messages"][1]
        assert "perro corriendo" in user_message["content"]
        assert "A dog on a beach" in user_message["content"]

    @pytest.mark.asyncio
    async def test_refine_prompt_falls_back_to_original(self, vision, client):
        client.chat.completions.create.side_effect = openai.OpenAIError("down")

        assert await vision.refine_prompt("perro corriendo", None) == "perro corriendo"
