import pytest
from fastapi import status

from src.api.core.messages import MessageCode
from tests.utils.assertions import assert_error_response


class TestAuthentication:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path", ["/v1/credits/balance", "/v1/credits/transactions"]
    )
    async def test_missing_header(self, public_client, path):
        response = await public_client.get(path)

        assert_error_response(
            response, MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED
        )

    @pytest.mark.asyncio
    async def test_wrong_scheme(self, public_client):
        response = await public_client.get(
            "/v1/credits/balance", headers={"Authorization": "Basic abc"}
        )

        assert_error_response(
            response, MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED
        )

    @pytest.mark.asyncio
    async def test_invalid_token(self, public_client):
        response = await public_client.get(
            "/v1/credits/balance", headers={"Authorization": "Bearer not-a-token"}
        )

        assert_error_response(
            response, MessageCode.INVALID_TOKEN, status.HTTP_401_UNAUTHORIZED
        )

    @pytest.mark.asyncio
    async def test_anonymous_token(self, public_client, jwt_token_factory, test_user):
        token = jwt_token_factory(str(test_user.id), role="anon")

        response = await public_client.get(
            "/v1/credits/balance", headers={"Authorization": f"Bearer {token}"}
        )

        assert_error_response(
            response, MessageCode.INVALID_TOKEN, status.HTTP_401_UNAUTHORIZED
        )
