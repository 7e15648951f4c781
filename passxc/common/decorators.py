"""Session state guards for protocol operations.
"""

from __future__ import annotations

from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from passxc.client.domain.entities import SessionState

from passxc.common.exceptions import SessionStateError


def requires_state(*states: SessionState) -> Callable:
    """Decorator that runs a session method only in one of the given states.

    The decorated method's instance must expose a `state` attribute.

    Args:
        states: States in which the call is allowed

    Returns:
        Decorated method raising SessionStateError in any other state
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if self.state not in states:
                allowed = ", ".join(state.value for state in states)
                msg = (
                    f"{func.__name__} not allowed in state {self.state.value} "
                    f"(expected {allowed})"
                )
                raise SessionStateError(msg)
            return func(self, *args, **kwargs)

        return wrapper

    return decorator
