"""Client for the Vidu image-to-video API."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from src.utils.logger import get_logger
from src.utils.settings.vidu import ViduSettings

logger = get_logger(__name__)


class ViduError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass
class ViduTask:
    task_id: str
    state: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class ViduClient:
    """Submits generation tasks; results arrive later on the callback URL."""

    def __init__(
        self,
        settings: ViduSettings | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.settings = settings or ViduSettings()
        self._session = session

    def build_payload(self, prompt: str, image_base64: str | None) -> dict[str, Any]:
        return {
            "model": self.settings.VIDU_MODEL,
            "images": [f"data:image/jpeg;base64,{image_base64}"] if image_base64 else [],
            "prompt": prompt,
            "duration": self.settings.VIDU_DURATION,
            "resolution": self.settings.VIDU_RESOLUTION,
            "callback_url": self.settings.VIDU_CALLBACK_URL,
        }

    async def create_task(self, prompt: str, image_base64: str | None) -> ViduTask:
        payload = self.build_payload(prompt, image_base64)
        headers = {
            "Authorization": f"Token {self.settings.VIDU_API_KEY.get_secret_value()}",
            "Content-Type": "application/json",
        }

        if self._session is not None:
            status, text = await self._post(self._session, payload, headers)
        else:
            async with aiohttp.ClientSession() as session:
                status, text = await self._post(session, payload, headers)

        if not 200 <= status < 300:
            logger.error("vidu_api_error", status=status, response=text[:500])
            raise ViduError(f"Vidu API error ({status}): {text[:500]}", status)

        try:
            data = json.loads(text)
        except ValueError:
            logger.error("vidu_invalid_response", response=text[:200])
            raise ViduError("Invalid Vidu response format", status)

        task_id = data.get("task_id") if isinstance(data, dict) else None
        if not task_id:
            logger.error("vidu_missing_task_id", response=text[:200])
            raise ViduError("No task_id in Vidu response", status)

        logger.info("vidu_task_created", task_id=str(task_id), state=data.get("state"))
        return ViduTask(task_id=str(task_id), state=data.get("state"), raw=data)

    async def _post(
        self,
        session: aiohttp.ClientSession,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> tuple[int, str]:
        try:
            async with session.post(
                self.settings.VIDU_API_URL,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.settings.VIDU_TIMEOUT_SECONDS),
            ) as response:
                return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("vidu_request_failed", error=str(e))
            raise ViduError(f"Vidu API unavailable: {e}") from e


async def get_vidu_client() -> ViduClient:
    return ViduClient()
