from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ValueSubmission(BaseModel):
    # Kept untyped so JSON true/2.0/null reach parse_index as-is instead of
    # being coerced here; the dispatcher answers with the plain-text 422.
    index: Any


class ValueRead(BaseModel):
    number: int

    class Config:
        from_attributes = True


class SubmissionAccepted(BaseModel):
    working: bool = True


class DeadLetterRead(BaseModel):
    key: str | None
    payload: str
    error: str
    attempts: int
