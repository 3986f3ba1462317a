from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class MissingDestination(ValueError):
    """Raised when a reminder or announcement has nowhere to be delivered."""


@dataclass(frozen=True)
class Destination:
    email: Optional[str] = None
    sms_phone: Optional[str] = None
    sms_gateway_domain: Optional[str] = None
    webhook_url: Optional[str] = None

    @classmethod
    def of(cls, record) -> "Destination":
        return cls(
            email=record.email,
            sms_phone=record.sms_phone,
            sms_gateway_domain=record.sms_gateway_domain,
            webhook_url=record.webhook_url,
        )

    def is_empty(self) -> bool:
        # An SMS number is only usable together with its carrier gateway.
        return not (
            self.email or (self.sms_phone and self.sms_gateway_domain) or self.webhook_url
        )

    def require(self) -> "Destination":
        if self.is_empty():
            raise MissingDestination(
                "Set an email, a webhook_url, or sms_phone with sms_gateway_domain"
            )
        return self
