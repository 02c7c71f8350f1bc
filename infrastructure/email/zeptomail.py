"""ZeptoMail implementation of EmailProvider.

Sends one-time codes and reset links through the ZeptoMail HTTP API.
HTML bodies are rendered from the Jinja2 templates in templates/emails/;
a plain-text body is always attached as well.
"""

import os
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.contacts import mask_contact
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

_PURPOSE_LABELS = {
    "LOGIN": "Login",
    "PASSWORD": "Password Reset",
    "PIN": "PIN Reset",
}


def purpose_label(purpose: str) -> str:
    return _PURPOSE_LABELS.get(purpose, "Login")


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_name: str = "Maintenance App",
        otp_ttl_minutes: int = 5,
        reset_ttl_minutes: int = 60,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name
        self._otp_ttl_minutes = otp_ttl_minutes
        self._reset_ttl_minutes = reset_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        auth_header = self._settings.zepto_api_token
        if not auth_header.startswith("Zoho-enczapikey "):
            auth_header = f"Zoho-enczapikey {auth_header}"

        headers = {"Authorization": auth_header, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=payload, headers=headers
            )
            if response.status_code in (200, 201, 202):
                log.info("email_sent_success", to_email=mask_contact(to_email), subject=subject)
                return True
            log.error(
                "email_sent_failed",
                to_email=mask_contact(to_email),
                subject=subject,
                status_code=response.status_code,
            )
            return False
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=mask_contact(to_email),
                subject=subject,
                error_type=type(e).__name__,
            )
            return False

    async def send_otp_email(
        self, email: str, user_name: Optional[str], otp_code: str, purpose: str
    ) -> bool:
        label = purpose_label(purpose)
        subject = f"Your {label} OTP"
        template = self._jinja.get_template("otp.html")
        html_body = template.render(
            otp_code=otp_code,
            user_name=user_name,
            label=label,
            ttl_minutes=self._otp_ttl_minutes,
            app_name=self._app_name,
        )
        text_body = (
            f"Hello{f' {user_name}' if user_name else ''},\n\n"
            f"Your {label.lower()} code is {otp_code}. "
            f"It expires in {self._otp_ttl_minutes} minutes.\n\n"
            f"If you did not request this code you can ignore this email.\n\n"
            f"{self._app_name}"
        )
        return await self._send(email, user_name, subject, html_body, text_body)

    async def send_reset_link_email(
        self, email: str, user_name: Optional[str], reset_link: str, purpose: str
    ) -> bool:
        label = purpose_label(purpose)
        subject = f"{label} requested - {self._app_name}"
        template = self._jinja.get_template("reset_link.html")
        html_body = template.render(
            reset_link=reset_link,
            user_name=user_name,
            label=label,
            ttl_minutes=self._reset_ttl_minutes,
            app_name=self._app_name,
        )
        text_body = (
            f"Hello{f' {user_name}' if user_name else ''},\n\n"
            f"Use the link below to complete your {label.lower()}. "
            f"It expires in {self._reset_ttl_minutes} minutes and can be used once.\n\n"
            f"{reset_link}\n\n"
            f"{self._app_name}"
        )
        return await self._send(email, user_name, subject, html_body, text_body)
