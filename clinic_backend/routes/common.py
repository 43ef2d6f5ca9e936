from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core.errors import StorageError
from clinic_backend.database import ensure_appointment_schema, ensure_availability_schema


class CamelModel(BaseModel):
    """Base for request and response bodies using the camelCase wire format."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise StorageError('Database unavailable. Verify DATABASE_URL.') from exc


def serialize(schema: type[CamelModel], instance: Any) -> dict:
    return schema.model_validate(instance).model_dump(mode='json', by_alias=True)


def success(data: dict | None = None, message: str | None = None) -> dict:
    body: dict[str, Any] = {'success': True}
    if message is not None:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return body
