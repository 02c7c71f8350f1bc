"""Fast2SMS implementation of SmsProvider.

Posts a form-encoded "quick" route message to the bulkV2 endpoint. Numbers
are sent digits-only.
"""

from config import SmsSettings
from infrastructure.http_client import HttpClient
from shared.contacts import mask_contact, phone_digits
from shared.logging import get_logger

log = get_logger(__name__)

_FAST2SMS_API_URL = "https://www.fast2sms.com/dev/bulkV2"

_MESSAGES = {
    "LOGIN": "Your login code is {code}. It expires in {minutes} minutes.",
    "PASSWORD": "Your password reset code is {code}. It expires in {minutes} minutes.",
    "PIN": "Your PIN reset code is {code}. It expires in {minutes} minutes.",
}


def build_otp_message(code: str, purpose: str, minutes: int = 5) -> str:
    template = _MESSAGES.get(purpose, _MESSAGES["LOGIN"])
    return template.format(code=code, minutes=minutes)


class Fast2SmsProvider:
    def __init__(
        self,
        settings: SmsSettings,
        http_client: HttpClient,
        otp_ttl_minutes: int = 5,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._otp_ttl_minutes = otp_ttl_minutes

    async def send_otp_sms(self, phone: str, otp_code: str, purpose: str) -> bool:
        if not self._settings.fast2sms_api_key:
            log.error("sms_send_failed", reason="api_key_not_configured")
            return False

        numbers = phone_digits(phone)
        form = {
            "message": build_otp_message(otp_code, purpose, self._otp_ttl_minutes),
            "language": "english",
            "route": self._settings.fast2sms_route,
            "numbers": numbers,
        }
        headers = {"authorization": self._settings.fast2sms_api_key}

        try:
            response = await self._http.post(_FAST2SMS_API_URL, data=form, headers=headers)
        except Exception as e:
            log.error(
                "sms_send_error",
                to_phone=mask_contact(numbers),
                purpose=purpose,
                error_type=type(e).__name__,
            )
            return False

        if response.status_code != 200:
            log.error(
                "sms_send_failed",
                to_phone=mask_contact(numbers),
                purpose=purpose,
                status_code=response.status_code,
            )
            return False

        request_id = None
        try:
            request_id = response.json().get("request_id")
        except ValueError:
            pass
        log.info("sms_sent", to_phone=mask_contact(numbers), purpose=purpose, request_id=request_id)
        return True
