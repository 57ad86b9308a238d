"""Image moderation, description and prompt refinement through OpenAI."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from src.utils.logger import get_logger
from src.utils.settings.vision import VisionSettings

logger = get_logger(__name__)

NSFW_SYSTEM_PROMPT = """You moderate images for a public video generator. Decide whether the
image is unsuitable for a general audience. Look for:
- nudity or explicit sexual content
- graphic violence, blood or gore
- illegal drugs or paraphernalia
- hate symbols or extremist content
- suggestive content involving minors

Reply ONLY with a JSON object: {"is_nsfw": boolean, "reason": "short explanation when is_nsfw is true"}"""

DESCRIBE_SYSTEM_PROMPT = """You describe images for a film director. Write at most 30 words
covering the number and kind of subjects, the main action, the setting and the visual style.
Skip minor details. Reply with the description only."""

REFINE_SYSTEM_PROMPT = """You refine prompts for an AI video generation model. Combine the
user's short prompt (often in Spanish) with the image description into one detailed
prompt in natural ENGLISH. Describe the requested motion first, then add cinematic
lighting, composition and style. Reply with the final English prompt only."""

FALLBACK_DESCRIPTION = "Static scene with limited visual detail, photorealistic style."


@dataclass
class NSFWCheckResult:
    is_nsfw: bool
    reason: str | None = None


def _image_content(image_base64: str, text: str) -> list[dict]:
    return [
        {"type": "text", "text": text},
        {
            "type": "image_url",
            "image_url": {
                "url": f"data:image/jpeg;base64,{image_base64}",
                "detail": "low",
            },
        },
    ]


class VisionService:
    def __init__(
        self,
        settings: VisionSettings | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.settings = settings or VisionSettings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.OPENAI_API_KEY.get_secret_value(),
                timeout=self.settings.OPENAI_TIMEOUT_SECONDS,
            )
        return self._client

    async def check_nsfw(self, image_base64: str) -> NSFWCheckResult:
        """Moderate an image. Errors from the moderation call count as safe."""
        if not self.settings.NSFW_CHECK_ENABLED:
            return NSFWCheckResult(is_nsfw=False)

        try:
            response = await self.client.chat.completions.create(
                model=self.settings.OPENAI_VISION_MODEL,
                messages=[
                    {"role": "system", "content": NSFW_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": _image_content(image_base64, "Analyze this image:"),
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0.1,
                max_tokens=100,
            )
            result = json.loads(response.choices[0].message.content or "{}")
        except (openai.OpenAIError, ValueError) as e:
            logger.warning("nsfw_check_failed", error=str(e))
            return NSFWCheckResult(is_nsfw=False, reason="Moderation unavailable")

        is_nsfw = bool(result.get("is_nsfw", result.get("isNSFW", False)))
        reason = result.get("reason")
        if is_nsfw:
            logger.warning("nsfw_content_detected", reason=reason)
        return NSFWCheckResult(is_nsfw=is_nsfw, reason=reason)

    async def describe_image(self, image_base64: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.OPENAI_VISION_MODEL,
                messages=[
                    {"role": "system", "content": DESCRIBE_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": _image_content(image_base64, "Describe this image:"),
                    },
                ],
                temperature=0.3,
                max_tokens=60,
            )
        except openai.OpenAIError as e:
            logger.warning("image_description_failed", error=str(e))
            return FALLBACK_DESCRIPTION
        return (response.choices[0].message.content or "").strip() or FALLBACK_DESCRIPTION

    async def refine_prompt(self, prompt: str, image_description: str | None) -> str:
        """Turn the user's prompt into an English video prompt, or return it unchanged."""
        user_message = (
            f'User prompt: "{prompt}".\n'
            f'Image description: "{image_description or "no image provided"}".\n'
            "Refined English prompt:"
        )
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.OPENAI_PROMPT_MODEL,
                messages=[
                    {"role": "system", "content": REFINE_SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
                temperature=0.75,
                max_tokens=300,
            )
        except openai.OpenAIError as e:
            logger.warning("prompt_refinement_failed", error=str(e))
            return prompt
        return (response.choices[0].message.content or "").strip() or prompt


async def get_vision_service() -> VisionService:
    return VisionService()
