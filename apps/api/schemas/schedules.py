from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class WeeklyScheduleRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    weekday: Optional[int] = Field(default=None, ge=0, le=6)
    hour: Optional[int] = Field(default=None, ge=0, le=23)
    minute: Optional[int] = Field(default=None, ge=0, le=59)
    timezone: Optional[str] = None
    enabled: Optional[bool] = None
    email: Optional[str] = None
    sms_phone: Optional[str] = None
    sms_gateway_domain: Optional[str] = None
    webhook_url: Optional[str] = None


class WeeklyScheduleResponse(BaseModel):
    guild_id: str
    user_id: str
    message: str
    weekday: int
    hour: int
    minute: int
    timezone: str
    enabled: bool
    last_fired: Optional[str]
    next_run: str
    description: str
    cron: str
    created_at: str
    updated_at: str
