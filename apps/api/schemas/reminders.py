from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class ReminderRuleRequest(BaseModel):
    time: str = Field(..., min_length=1, description="14:30 or 2:30 PM")
    frequency: str = Field(default="once", min_length=1)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    target_date: Optional[dt.date] = None


class ReminderCreateRequest(ReminderRuleRequest):
    guild_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    message: str = Field(..., min_length=1)
    email: Optional[str] = None
    sms_phone: Optional[str] = None
    sms_gateway_domain: Optional[str] = None
    webhook_url: Optional[str] = None


class ReminderPreviewResponse(BaseModel):
    timezone: str
    next_trigger: str


class ReminderResponse(BaseModel):
    id: str
    guild_id: str
    user_id: str
    message: str
    time: str
    frequency: str
    day_of_week: Optional[int]
    day_of_month: Optional[int]
    month: Optional[int]
    target_date: Optional[str]
    email: Optional[str]
    sms_phone: Optional[str]
    sms_gateway_domain: Optional[str]
    webhook_url: Optional[str]
    active: bool
    next_trigger: Optional[str]
    last_fired_at: Optional[str]
    created_at: str
    updated_at: str
