from fastapi import Request
from pydantic import BaseModel, ValidationError
from typing import Optional, Type, TypeVar

from retrade.application.errors import ActionError, first_error_message
from retrade.application.session import SessionData, read_session

ModelT = TypeVar("ModelT", bound=BaseModel)

def get_session(request: Request) -> Optional[SessionData]:
    return read_session(request)

def parse_form(model: Type[ModelT], data: dict) -> ModelT:
    """Validate submitted form fields, reporting only the first problem."""
    try:
        return model(**data)
    except ValidationError as e:
        raise ActionError(first_error_message(e.errors()))

def ok(message: str, **extra) -> dict:
    return {"success": True, "message": message, **extra}
