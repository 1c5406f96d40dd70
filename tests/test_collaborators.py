"""Tests for the SMTP mail service and the Cloudinary image host."""

import hashlib
import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.config import Settings
from src.exceptions import UpstreamServiceError
from src.models.state import Avatar
from src.services.image_host import ImageHostService, ImageUpload
from src.services.mail_service import MailService


@pytest.fixture
def settings():
    return Settings(
        smtp_host="smtp.test",
        smtp_port=2525,
        smtp_user="mailer",
        smtp_password="secret",  # noqa: S106
        smtp_from="noreply@todo.test",
        smtp_use_tls=True,
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="shh",  # noqa: S106
    )


class TestMailService:
    """Tests for MailService."""

    def test_sends_message(self, settings):
        with patch("src.services.mail_service.smtplib.SMTP") as mock_smtp:
            conn = mock_smtp.return_value.__enter__.return_value

            MailService(settings).send("a@x.com", "Verify your account", "Your OTP is 42")

            mock_smtp.assert_called_once_with(host="smtp.test", port=2525, timeout=30.0)
            conn.starttls.assert_called_once()
            conn.login.assert_called_once_with("mailer", "secret")
            message = conn.send_message.call_args.args[0]
            assert message["To"] == "a@x.com"
            assert message["From"] == "noreply@todo.test"
            assert message["Subject"] == "Verify your account"
            assert "Your OTP is 42" in message.get_content()

    def test_smtp_failure_is_upstream_error(self, settings):
        with patch("src.services.mail_service.smtplib.SMTP") as mock_smtp:
            mock_smtp.side_effect = smtplib.SMTPConnectError(421, "unavailable")
            with pytest.raises(UpstreamServiceError):
                MailService(settings).send("a@x.com", "s", "b")

    def test_connection_refused_is_upstream_error(self, settings):
        with patch("src.services.mail_service.smtplib.SMTP") as mock_smtp:
            mock_smtp.side_effect = ConnectionRefusedError()
            with pytest.raises(UpstreamServiceError):
                MailService(settings).send("a@x.com", "s", "b")


def mock_async_client(response: MagicMock):
    """Patch httpx.AsyncClient so ``post`` returns ``response``."""
    client = MagicMock()
    client.post = AsyncMock(return_value=response)
    client_cm = MagicMock()
    client_cm.__aenter__ = AsyncMock(return_value=client)
    client_cm.__aexit__ = AsyncMock(return_value=False)
    return client, patch("src.services.image_host.httpx.AsyncClient", return_value=client_cm)


class TestImageHostService:
    """Tests for ImageHostService."""

    def test_signature(self, settings):
        host = ImageHostService(settings)
        expected = hashlib.sha1(b"folder=todoApp&timestamp=1700000000shh").hexdigest()  # noqa: S324
        assert host.sign({"timestamp": "1700000000", "folder": "todoApp"}) == expected

    @pytest.mark.asyncio
    async def test_upload(self, settings):
        response = MagicMock()
        response.json.return_value = {
            "public_id": "todoApp/abc",
            "secure_url": "https://res.cloudinary.com/demo/todoApp/abc.png",
        }
        client, patcher = mock_async_client(response)

        with patcher:
            avatar = await ImageHostService(settings).upload(
                ImageUpload(filename="me.png", content=b"png", content_type="image/png")
            )

        assert avatar == Avatar(
            public_id="todoApp/abc",
            url="https://res.cloudinary.com/demo/todoApp/abc.png",
        )
        url = client.post.call_args.args[0]
        assert url == "https://api.cloudinary.com/v1_1/demo/image/upload"
        data = client.post.call_args.kwargs["data"]
        assert data["folder"] == "todoApp"
        assert data["api_key"] == "key"
        assert "signature" in data
        assert client.post.call_args.kwargs["files"]["file"][0] == "me.png"

    @pytest.mark.asyncio
    async def test_destroy(self, settings):
        client, patcher = mock_async_client(MagicMock())

        with patcher:
            await ImageHostService(settings).destroy("todoApp/abc")

        assert client.post.call_args.args[0].endswith("/image/destroy")
        assert client.post.call_args.kwargs["data"]["public_id"] == "todoApp/abc"

    @pytest.mark.asyncio
    async def test_http_error_is_upstream_error(self, settings):
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "boom", request=MagicMock(), response=MagicMock()
        )
        _, patcher = mock_async_client(response)

        with patcher, pytest.raises(UpstreamServiceError):
            await ImageHostService(settings).upload(ImageUpload(filename="a.png", content=b""))

    @pytest.mark.asyncio
    async def test_unconfigured_host(self):
        host = ImageHostService(Settings(cloudinary_cloud_name=None))
        assert host.is_configured is False
        with pytest.raises(UpstreamServiceError):
            await host.destroy("todoApp/abc")
