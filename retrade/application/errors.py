class ActionError(Exception):
    """A user-facing failure of a marketplace action.

    The message is shown to the user as-is (API ``error`` field or page flash),
    so it must never carry internal details.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

class NotAuthenticated(ActionError):
    def __init__(self, message: str = "You must be logged in"):
        super().__init__(message, status_code=401)

class Forbidden(ActionError):
    def __init__(self, message: str):
        super().__init__(message, status_code=403)

class NotFound(ActionError):
    def __init__(self, message: str):
        super().__init__(message, status_code=404)

def first_error_message(errors: list, default: str = "Validation failed") -> str:
    """Message of the first validation issue.

    Messages raised by our own validators are shown as written; pydantic's
    built-in messages are prefixed with the offending field.
    """
    if not errors:
        return default
    first = errors[0]
    message = first.get("msg") or default
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    fields = [str(part) for part in first.get("loc", ()) if isinstance(part, str)]
    if fields and fields[-1] not in ("body", "query", "path"):
        return f"{fields[-1]}: {message}"
    return message
