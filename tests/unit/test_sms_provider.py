"""Unit tests for TwilioSmsProvider: message bodies, retries and failures."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from config import SmsSettings
from errors import MisconfiguredServiceError, TransportError
from infrastructure.sms.twilio import TwilioSmsProvider


def _settings(**overrides) -> SmsSettings:
    base = dict(
        sms_enabled=True,
        twilio_account_sid="AC123",
        twilio_auth_token="tok",
        twilio_phone_number="+15550000000",
        sms_max_attempts=3,
        sms_backoff_base_seconds=0.05,
        sms_backoff_cap_seconds=2.0,
    )
    base.update(overrides)
    return SmsSettings(**base)


def _response(status_code: int, json_body: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_body or {}
    resp.text = str(json_body or "")
    return resp


@pytest.fixture
def http():
    client = MagicMock()
    client.post = AsyncMock(return_value=_response(201, {"sid": "SM1"}))
    return client


@pytest.fixture
def sleep(mocker):
    return mocker.patch("infrastructure.sms.twilio.asyncio.sleep", new_callable=AsyncMock)


class TestMessageBodies:
    async def test_verification_code_body(self, http):
        provider = TwilioSmsProvider(_settings(), http, product_name="MusicMaster")
        sid = await provider.send_verification_code("+15555551234", "123456")

        assert sid == "SM1"
        url = http.post.call_args.args[0]
        kwargs = http.post.call_args.kwargs
        assert url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert kwargs["auth"] == ("AC123", "tok")
        assert kwargs["data"] == {
            "To": "+15555551234",
            "From": "+15550000000",
            "Body": "Your MusicMaster verification code is: 123456. "
            "This code expires in 5 minutes.",
        }

    async def test_password_change_code_body(self, http):
        provider = TwilioSmsProvider(_settings(), http)
        await provider.send_password_change_code("+15555551234", "654321")
        body = http.post.call_args.kwargs["data"]["Body"]
        assert body == (
            "Your MusicMaster password change code is: 654321. "
            "This code expires in 5 minutes."
        )

    async def test_ok_status_200_also_accepted(self, http):
        http.post.return_value = _response(200, {"sid": "SM2"})
        provider = TwilioSmsProvider(_settings(), http)
        assert await provider.send_verification_code("+15555551234", "123456") == "SM2"

    def test_enabled_mirrors_settings(self, http):
        assert TwilioSmsProvider(_settings(), http).enabled is True
        assert TwilioSmsProvider(_settings(sms_enabled=False), http).enabled is False


class TestConfiguration:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"twilio_account_sid": ""},
            {"twilio_auth_token": ""},
            {"twilio_phone_number": ""},
        ],
        ids=["no-sid", "no-token", "no-sender"],
    )
    async def test_missing_config_raises_misconfigured(self, http, overrides):
        provider = TwilioSmsProvider(_settings(**overrides), http)
        with pytest.raises(MisconfiguredServiceError):
            await provider.send_verification_code("+15555551234", "123456")
        http.post.assert_not_called()


class TestRetries:
    async def test_retries_server_errors_then_succeeds(self, http, sleep):
        http.post.side_effect = [_response(503), _response(500), _response(201, {"sid": "SM3"})]
        provider = TwilioSmsProvider(_settings(), http)

        assert await provider.send_verification_code("+15555551234", "123456") == "SM3"
        assert http.post.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.05, 0.1]

    async def test_retries_rate_limit(self, http, sleep):
        http.post.side_effect = [_response(429), _response(201, {"sid": "SM4"})]
        provider = TwilioSmsProvider(_settings(), http)
        assert await provider.send_verification_code("+15555551234", "123456") == "SM4"
        sleep.assert_awaited_once()

    async def test_retries_network_errors(self, http, sleep):
        http.post.side_effect = [httpx.ConnectError("boom"), _response(201, {"sid": "SM5"})]
        provider = TwilioSmsProvider(_settings(), http)
        assert await provider.send_verification_code("+15555551234", "123456") == "SM5"

    async def test_gives_up_after_max_attempts(self, http, sleep):
        http.post.side_effect = httpx.ReadTimeout("slow")
        provider = TwilioSmsProvider(_settings(sms_max_attempts=3), http)

        with pytest.raises(TransportError):
            await provider.send_verification_code("+15555551234", "123456")
        assert http.post.await_count == 3
        # No sleep after the final attempt
        assert sleep.await_count == 2

    async def test_backoff_is_capped(self, http, sleep):
        http.post.return_value = _response(503)
        provider = TwilioSmsProvider(
            _settings(sms_max_attempts=5, sms_backoff_base_seconds=1.0, sms_backoff_cap_seconds=2.5),
            http,
        )
        with pytest.raises(TransportError):
            await provider.send_password_change_code("+15555551234", "123456")
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 2.5, 2.5]

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    async def test_client_errors_fail_immediately(self, http, sleep, status):
        http.post.return_value = _response(status, {"message": "bad"})
        provider = TwilioSmsProvider(_settings(), http)

        with pytest.raises(TransportError, match=f"HTTP {status}"):
            await provider.send_verification_code("+15555551234", "123456")
        assert http.post.await_count == 1
        sleep.assert_not_called()
