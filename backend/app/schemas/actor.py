"""
The caller identity threaded explicitly through every service call.

Inkwell never authenticates; the upstream gateway asserts who the caller is
and this model carries that assertion. Nothing in the services reads
identity from ambient state.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class Actor(BaseModel):
    id: uuid.UUID = Field(description="Caller's user ID")
    email: Optional[str] = Field(default=None, description="Caller's email, for display only")

    model_config = {"frozen": True}
