"""Role checks applied before an authoring session is opened."""
from __future__ import annotations

from typing import Iterable, Optional, Union

from authoring.domain.errors import NotAuthorizedError
from authoring.domain.models import CallerIdentity, UserRole


def require_role(
    identity: Optional[CallerIdentity],
    required: Union[UserRole, Iterable[UserRole]],
) -> CallerIdentity:
    """Return the identity when it holds one of the required roles."""
    allowed = {required} if isinstance(required, str) else set(required)
    label = "|".join(sorted(allowed))
    if identity is None:
        raise NotAuthorizedError(label, None)
    if identity.role not in allowed:
        raise NotAuthorizedError(label, identity.role)
    return identity
