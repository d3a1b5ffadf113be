from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelCaseBaseModel(BaseModel):
    """
    Base model for pipeline results and request bodies.

    - Input: camelCase keys (``userIds``) and snake_case names are both accepted.
    - Output: ``model_dump(by_alias=True)`` produces the camelCase shape the
      scheduler and the mobile client expect (``notificationsCreated``).
    - Enums dump as their value and datetimes as ISO-8601 strings.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*")
    def serialize_any(self, value):
        if isinstance(value, Enum):
            return value.value

        # datetime is a subclass of date
        if isinstance(value, (datetime, date)):
            return value.isoformat()

        if isinstance(value, (list, tuple)):
            return [self.serialize_any(item) for item in value]

        if isinstance(value, dict):
            return {key: self.serialize_any(val) for key, val in value.items()}

        return value
