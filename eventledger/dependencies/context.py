"""Request context supplied by the upstream gateway."""

from dataclasses import dataclass

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class LedgerContext:
    organization_id: int
    user_id: int | None = None


def get_ledger_context(
    x_organization_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> LedgerContext:
    # The gateway authenticates the caller and forwards tenant and actor ids.
    if not x_organization_id:
        raise HTTPException(status_code=400, detail="X-Organization-Id header is required")
    try:
        organization_id = int(x_organization_id)
        user_id = int(x_user_id) if x_user_id else None
    except ValueError:
        raise HTTPException(status_code=400, detail="Organization and user ids must be integers")
    return LedgerContext(organization_id=organization_id, user_id=user_id)
