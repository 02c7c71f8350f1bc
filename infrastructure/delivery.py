"""Out-of-band delivery of one-time codes and reset links.

OtpDelivery picks the channel from the contact's shape (e-mail vs phone) and
hands off to the configured provider. In demo mode nothing leaves the
process: the code or link is written to the log instead so a demo device can
sign in without real SMS or e-mail.

Delivery never raises; providers report failure by returning False.
"""

from __future__ import annotations

from typing import Optional

from infrastructure.email.protocol import EmailProvider
from infrastructure.sms.protocol import SmsProvider
from shared.contacts import Channel, channel_for, mask_contact
from shared.logging import get_logger

log = get_logger(__name__)


class OtpDelivery:
    def __init__(
        self,
        email_provider: EmailProvider,
        sms_provider: SmsProvider,
        demo_mode: bool = False,
    ) -> None:
        self._email = email_provider
        self._sms = sms_provider
        self._demo_mode = demo_mode

    async def send(
        self,
        contact: str,
        code: str,
        purpose: str,
        user_name: Optional[str] = None,
    ) -> bool:
        channel = channel_for(contact)
        if self._demo_mode:
            log.info(
                "otp_delivery_demo",
                channel=channel.value,
                purpose=purpose,
                contact=mask_contact(contact),
                demo_code=code,
            )
            return True

        if channel is Channel.EMAIL:
            sent = await self._email.send_otp_email(contact, user_name, code, purpose)
        else:
            sent = await self._sms.send_otp_sms(contact, code, purpose)

        if not sent:
            log.warning(
                "otp_delivery_failed",
                channel=channel.value,
                purpose=purpose,
                contact=mask_contact(contact),
            )
        return sent

    async def send_reset_link(
        self,
        email: str,
        link: str,
        purpose: str,
        user_name: Optional[str] = None,
    ) -> bool:
        if self._demo_mode:
            log.info(
                "reset_link_delivery_demo",
                purpose=purpose,
                contact=mask_contact(email),
                reset_link=link,
            )
            return True

        sent = await self._email.send_reset_link_email(email, user_name, link, purpose)
        if not sent:
            log.warning("reset_link_delivery_failed", purpose=purpose, contact=mask_contact(email))
        return sent
