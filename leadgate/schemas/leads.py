"""
Request/response schemas for the lead API.
"""
import ipaddress
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leadgate.utils.phone import normalize_phone_e164

_MAX_DATA_KEYS = 50


class LeadCreateRequest(BaseModel):
    """A quiz/form submission. userId/quizId/projectId are accepted as aliases."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(default=None, alias="userId")
    quiz_id: Optional[int] = Field(default=None, alias="quizId")
    project_id: Optional[int] = Field(default=None, alias="projectId")

    external_id: Optional[str] = Field(default=None, max_length=150)
    external_system: Optional[str] = Field(default=None, max_length=255)
    external_entity: Optional[str] = Field(default=None, max_length=255)
    external_entity_id: Optional[str] = Field(default=None, max_length=255)
    external_project_id: Optional[str] = Field(default=None, max_length=255)

    name: Optional[str] = Field(default=None, max_length=150)
    email: Optional[str] = Field(default=None, max_length=150)
    phone: Optional[str] = None
    messengers: Optional[dict[str, str]] = None
    contacts: Optional[dict[str, Any]] = None

    ip_address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)

    utm_source: Optional[str] = Field(default=None, max_length=100)
    utm_medium: Optional[str] = Field(default=None, max_length=100)
    utm_campaign: Optional[str] = Field(default=None, max_length=100)
    utm_content: Optional[str] = Field(default=None, max_length=100)
    utm_term: Optional[str] = Field(default=None, max_length=100)

    data: Optional[dict[str, Any]] = None
    status: Optional[int] = Field(default=None, ge=0, le=100)
    is_test: bool = False
    paid: bool = False
    fingerprint: Optional[str] = Field(default=None, max_length=255)

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        normalized = normalize_phone_e164(value)
        if normalized is None:
            raise ValueError("Phone must be a valid E.164 number")
        return normalized

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value

    @field_validator("ip_address")
    @classmethod
    def _check_ip(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        try:
            return str(ipaddress.ip_address(value.strip()))
        except ValueError:
            raise ValueError("Invalid IP address")

    @field_validator("data")
    @classmethod
    def _limit_data(cls, value: Optional[dict]) -> Optional[dict]:
        if value is not None and len(value) > _MAX_DATA_KEYS:
            raise ValueError(f"data may contain at most {_MAX_DATA_KEYS} keys")
        return value


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    project_id: Optional[int] = None
    quiz_id: Optional[int] = None
    external_id: Optional[str] = None
    external_system: str
    external_entity: str
    external_entity_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    # Decrypted by the route, never the stored envelope
    contacts: Optional[dict] = None
    ip_address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    status: int
    is_test: bool
    paid: bool
    blocked: bool
    viewed: bool
    fingerprint: Optional[str] = None
    equal_answer_id: Optional[int] = None
    created_at: datetime
    deleted_at: Optional[datetime] = None


class ResendRequest(BaseModel):
    integration_types: list[str] = Field(default_factory=list)
    credentials: dict[str, Any] = Field(default_factory=dict)


class BulkResendRequest(ResendRequest):
    lead_ids: list[int] = Field(..., min_length=1, max_length=1000)


class BulkResendResponse(BaseModel):
    dispatched_count: int
    total_count: int
    errors_count: int
    errors: list[dict]
