"""
Shared base model for API request and response bodies.

The public API speaks camelCase JSON (``requiresTwoFactor``,
``registrationNumber``); Python code uses snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
