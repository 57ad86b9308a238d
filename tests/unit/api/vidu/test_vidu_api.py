import pytest
from fastapi import status

from src.database.models import VideoStatus
from tests.factories import VideoGenerationFactory


class TestViduWebhook:
    @pytest.mark.asyncio
    async def test_success_callback(self, public_client, db_session, test_user):
        video = await VideoGenerationFactory.create_async(
            db_session,
            user_id=test_user.id,
            status=VideoStatus.PROCESSING.value,
            credits_used=1,
            vidu_task_id="task-9",
        )

        response = await public_client.post(
            "/vidu/webhook",
            json={
                "id": "task-9",
                "state": "success",
                "creations": [{"id": "c1", "url": "https://cdn.vidu.test/v.mp4"}],
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "completed"
        await db_session.refresh(video)
        assert video.status == VideoStatus.COMPLETED.value
        assert video.video_url == "https://cdn.vidu.test/v.mp4"

    @pytest.mark.asyncio
    async def test_invalid_json(self, public_client):
        response = await public_client.post(
            "/vidu/webhook",
            content=b"<html>",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True, "status": "invalid_json"}

    @pytest.mark.asyncio
    async def test_unknown_task(self, public_client):
        response = await public_client.post(
            "/vidu/webhook", json={"id": "ghost", "state": "success"}
        )

        assert response.json() == {"received": True, "status": "not_found"}

    @pytest.mark.asyncio
    async def test_get_answers_status_check(self, public_client):
        response = await public_client.get("/vidu/webhook")

        assert response.json() == {"status": "ok"}
