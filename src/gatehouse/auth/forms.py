# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Mapping, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

from gatehouse.errors import FormValidationError

F = TypeVar("F", bound=BaseModel)


def _clean_email(v: Any) -> Any:
    return v.strip().lower() if isinstance(v, str) else v


def _require_visible(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


class SignupForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, v: str) -> str:
        return _require_visible(v)


class LoginForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _clean_email(v)


def first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "form"
    msg = str(err.get("msg") or "is invalid")
    return f'"{field}" {msg[:1].lower()}{msg[1:]}'


def parse_form(model: Type[F], data: Mapping[str, Any]) -> F:
    """Validate submitted form fields, raising FormValidationError on the first failure."""
    fields = {k: v for k, v in dict(data).items() if isinstance(v, str)}
    try:
        return model.model_validate(fields)
    except ValidationError as exc:
        message = first_error(exc)
        logger.debug("{} rejected: {}", model.__name__, message)
        raise FormValidationError(message) from exc
