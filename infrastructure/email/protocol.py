"""EmailProvider protocol - services depend on this, not the concrete implementation."""

from typing import Optional, Protocol


class EmailProvider(Protocol):
    async def send_otp_email(
        self, email: str, user_name: Optional[str], otp_code: str, purpose: str
    ) -> bool: ...

    async def send_reset_link_email(
        self, email: str, user_name: Optional[str], reset_link: str, purpose: str
    ) -> bool: ...
