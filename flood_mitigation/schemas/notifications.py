from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flood_mitigation.schemas.messages import utc_now


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TelegramRequest(CamelModel):
    chat_id: str = Field(
        ...,
        pattern=r"^-?\d+$",
        description="Numeric Telegram chat id (negative for groups)",
    )
    message: str = Field(..., min_length=1, max_length=4096)
    type: str = Field("alert", description="Free-form tag, e.g. 'alert' or 'test'")


class WhatsAppRequest(CamelModel):
    to: str = Field(..., min_length=1, description="E.164 number, with or without 'whatsapp:'")
    message: str = Field(..., min_length=1, max_length=1600)
    type: str = "alert"


class NotificationResult(CamelModel):
    success: bool = True
    channel: str
    message_id: Optional[str] = None
    recipient: Optional[str] = None
    status: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class AlertRecord(CamelModel):
    timestamp: datetime = Field(default_factory=utc_now)
    level: str
    message: str
    status: str  # sent | failed
    error: Optional[str] = None


class AlertHistory(CamelModel):
    enabled: bool
    recipient: Optional[str] = None
    cooldown_minutes: float
    critical_only: bool
    alerts: List[AlertRecord]
