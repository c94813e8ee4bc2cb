from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.models.access import User
from cargodock.schemas.request_identity import RequestIdentity


def attach_internal_user_context(
    db: Session,
    *,
    identity: RequestIdentity,
) -> RequestIdentity:
    """
    Maps the caller's email to a local user and merges that user's roles
    into the identity. Unknown or inactive users keep only the roles they
    arrived with.
    """
    email = (identity.email or "").strip().lower()
    if not email:
        return identity

    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active:
        return identity

    role_names = sorted(
        {name.strip().lower() for name in identity.role_names if name and name.strip()}
        | {(role.name or "").strip().lower() for role in user.roles if role and role.name}
    )
    return identity.model_copy(
        update={
            "user_id": int(user.id),
            "role_names": role_names,
        }
    )
