from contextvars import ContextVar
from typing import Optional

# Call ID of the request currently flowing through the chain
call_id_var: ContextVar[Optional[str]] = ContextVar('call_id', default=None)


def get_call_id() -> Optional[str]:
    """Get call ID from the current context."""
    return call_id_var.get()


def set_call_id(call_id: Optional[str]):
    """Set call ID, returning the token needed to restore the previous value."""
    return call_id_var.set(call_id)


def reset_call_id(token) -> None:
    call_id_var.reset(token)
