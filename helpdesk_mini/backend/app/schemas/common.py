# helpdesk_mini/backend/app/schemas/common.py
from typing import Any


def blank_to_none(value: Any) -> Any:
    """
    Treat "" and whitespace-only strings as absent, so the services report
    FIELD_REQUIRED instead of a type error.
    """
    if isinstance(value, str) and not value.strip():
        return None
    return value
