from uuid import UUID

from fastapi import Header

from core.errors import invalid_format, raise_result

# Local-first default learner when no identity header is sent
SINGLE_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Learner identity from the ``X-User-ID`` header, else the default learner."""
    if not x_user_id:
        return str(SINGLE_USER_ID)
    try:
        return str(UUID(x_user_id))
    except ValueError:
        raise_result(invalid_format("X-User-ID", "UUID", got=x_user_id, origin="security"))
