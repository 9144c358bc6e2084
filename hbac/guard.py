"""Framework-agnostic route guard for async request handlers."""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from hbac.errors import AccessDeniedError, AuthenticationRequiredError

if TYPE_CHECKING:
    from hbac.hbac import HBAC

R = TypeVar("R")

Handler = Callable[..., Awaitable[R]]


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def default_get_user_id(request: Any) -> str | None:
    """Look for ``request.user.id``, ``request.user.sub``, then ``request.session["userId"]``."""
    user = _field(request, "user")
    session = _field(request, "session")
    return _field(user, "id") or _field(user, "sub") or _field(session, "userId") or None


def protect(
    hbac: HBAC,
    action: str,
    resource: str,
    *,
    get_user_id: Callable[[Any], str | None] | None = None,
    get_context: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable[[Handler], Handler]:
    """Decorate an async handler whose first argument is the request.

    Raises AuthenticationRequiredError when no user can be identified and
    AccessDeniedError when the decision is deny. Web frameworks map these
    onto 401 / 403 responses.
    """
    extract_user = get_user_id or default_get_user_id
    extract_context = get_context or (lambda request: {})

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: Any, *args: Any, **kwargs: Any) -> Any:
            user_id = extract_user(request)
            if not user_id:
                raise AuthenticationRequiredError()
            context = extract_context(request)
            if not await hbac.can(user_id, action, resource, context):
                raise AccessDeniedError(user_id, action, resource)
            return await handler(request, *args, **kwargs)

        return wrapper

    return decorator
