"""SmsProvider protocol — services depend on this, not the concrete implementation."""

from typing import Optional, Protocol


class SmsProvider(Protocol):
    @property
    def enabled(self) -> bool: ...

    async def send_verification_code(
        self, mobile_number: str, code: str
    ) -> Optional[str]: ...

    async def send_password_change_code(
        self, mobile_number: str, code: str
    ) -> Optional[str]: ...
