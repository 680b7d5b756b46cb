"""Twilio implementation of SmsProvider.

Talks to the Twilio Messages REST endpoint through the shared HttpClient
instead of the Twilio SDK, so delivery stays async end to end.

- Network errors, 429 and 5xx responses are retried with capped
  exponential backoff, up to ``sms_max_attempts`` tries in total.
- Any other non-2xx response fails immediately.
- Both failure paths raise TransportError; missing credentials or sender
  number raise MisconfiguredServiceError.
"""

import asyncio
from typing import Optional

import httpx

from config import SmsSettings
from errors import MisconfiguredServiceError, TransportError
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

VERIFICATION_TEMPLATE = (
    "Your {product} verification code is: {code}. This code expires in 5 minutes."
)
PASSWORD_CHANGE_TEMPLATE = (
    "Your {product} password change code is: {code}. This code expires in 5 minutes."
)


def _mask_number(mobile_number: str) -> str:
    return f"***{mobile_number[-4:]}" if len(mobile_number) > 4 else "***"


class TwilioSmsProvider:
    def __init__(
        self,
        settings: SmsSettings,
        http_client: HttpClient,
        product_name: str = "MusicMaster",
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._product = product_name

    @property
    def enabled(self) -> bool:
        return self._settings.sms_enabled

    def _backoff_delay(self, attempt: int) -> float:
        delay = self._settings.sms_backoff_base_seconds * (2 ** (attempt - 1))
        return min(delay, self._settings.sms_backoff_cap_seconds)

    def _check_configured(self) -> None:
        if not self._settings.twilio_account_sid or not self._settings.twilio_auth_token:
            log.error("sms_send_failed", reason="credentials_not_configured")
            raise MisconfiguredServiceError("Twilio credentials are not configured")
        if not self._settings.twilio_phone_number:
            log.error("sms_send_failed", reason="sender_not_configured")
            raise MisconfiguredServiceError("TWILIO_PHONE_NUMBER is not configured")

    async def _send(self, mobile_number: str, body: str, purpose: str) -> Optional[str]:
        self._check_configured()

        url = _TWILIO_MESSAGES_URL.format(sid=self._settings.twilio_account_sid)
        payload = {
            "To": mobile_number,
            "From": self._settings.twilio_phone_number,
            "Body": body,
        }
        auth = (self._settings.twilio_account_sid, self._settings.twilio_auth_token)
        max_attempts = max(1, self._settings.sms_max_attempts)

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._http.post(url, data=payload, auth=auth)
            except httpx.HTTPError as e:
                reason = f"{type(e).__name__}: {e}"
            else:
                if response.status_code in (200, 201):
                    message_sid = response.json().get("sid")
                    log.info(
                        "sms_sent",
                        purpose=purpose,
                        to=_mask_number(mobile_number),
                        message_sid=message_sid,
                        attempt=attempt,
                    )
                    return message_sid
                reason = f"HTTP {response.status_code}"
                if response.status_code != 429 and response.status_code < 500:
                    log.error(
                        "sms_send_failed",
                        purpose=purpose,
                        to=_mask_number(mobile_number),
                        status_code=response.status_code,
                        response=response.text[:200],
                    )
                    raise TransportError(f"Failed to send {purpose} code: {reason}")

            if attempt < max_attempts:
                delay = self._backoff_delay(attempt)
                log.warning(
                    "sms_send_retry",
                    purpose=purpose,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    delay=delay,
                    reason=reason,
                )
                await asyncio.sleep(delay)

        log.error(
            "sms_send_failed",
            purpose=purpose,
            to=_mask_number(mobile_number),
            attempts=max_attempts,
            reason=reason,
        )
        raise TransportError(f"Failed to send {purpose} code: {reason}")

    async def send_verification_code(self, mobile_number: str, code: str) -> Optional[str]:
        body = VERIFICATION_TEMPLATE.format(product=self._product, code=code)
        return await self._send(mobile_number, body, "verification")

    async def send_password_change_code(
        self, mobile_number: str, code: str
    ) -> Optional[str]:
        body = PASSWORD_CHANGE_TEMPLATE.format(product=self._product, code=code)
        return await self._send(mobile_number, body, "password change")
