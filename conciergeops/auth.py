# conciergeops/auth.py
from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser, Organization, OrgMembership


@dataclass(frozen=True)
class Principal:
    org_id: int
    org_slug: str
    user_id: int
    email: str
    role: str  # admin | manager | operator | owner_viewer


ROLE_ORDER = {"owner_viewer": 1, "operator": 2, "manager": 3, "admin": 4}


class CronUnauthorized(Exception):
    """Raised by require_cron_secret; main.py renders it as {"error": "Unauthorized"} / 401."""


def _require_role(principal: Principal, min_role: str) -> None:
    if ROLE_ORDER.get(principal.role, 0) < ROLE_ORDER.get(min_role, 999):
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role}")


# -------------------------
# Cron trigger guard
# -------------------------
def cron_token_ok(authorization: Optional[str], secret: Optional[str]) -> bool:
    """
    True iff `authorization` is exactly "Bearer <secret>" and a secret is configured.
    Constant-time comparison.
    """
    expected_secret = (secret or "").strip()
    if not expected_secret or not authorization:
        return False
    expected = f"Bearer {expected_secret}"
    return hmac.compare_digest(str(authorization).encode(), expected.encode())


def require_cron_secret(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
    if not cron_token_ok(authorization, settings.cron_secret):
        raise CronUnauthorized()


# -------------------------
# Org + membership helpers
# -------------------------
def _resolve_org(db: Session, org_slug: str) -> Organization:
    org = db.scalar(select(Organization).where(Organization.slug == org_slug))
    if org:
        return org
    raise HTTPException(status_code=401, detail="Unknown org")


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


def _get_membership(db: Session, org_id: int, user_id: int) -> OrgMembership | None:
    return db.scalar(select(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))


def _provision(db: Session, *, org_slug: str, email: str, role_hint: str) -> tuple[Organization, AppUser, OrgMembership]:
    org = db.scalar(select(Organization).where(Organization.slug == org_slug))
    if org is None:
        org = Organization(slug=org_slug, name=org_slug, created_at=datetime.utcnow())
        db.add(org)
        db.commit()
        db.refresh(org)

    user = _get_user_by_email(db, email=email)
    if user is None:
        user = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(user)
        db.commit()
        db.refresh(user)

    mem = _get_membership(db, org_id=int(org.id), user_id=int(user.id))
    if mem is None:
        mem = OrgMembership(
            org_id=int(org.id),
            user_id=int(user.id),
            role=role_hint if role_hint in ROLE_ORDER else "operator",
            created_at=datetime.utcnow(),
        )
        db.add(mem)
        db.commit()
    return org, user, mem


# -------------------------
# get_principal
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    x_org_slug: Optional[str] = Header(default=None, alias="X-Org-Slug"),
    x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
) -> Principal:
    """
    Session handling lives in the front-end gateway, which forwards the
    active org and user as headers. In dev mode unknown orgs/users are
    provisioned on the fly (role taken from X-User-Role).
    """
    org_slug = str(x_org_slug or "").strip()
    if not org_slug:
        raise HTTPException(status_code=401, detail="Missing X-Org-Slug (active org context).")

    email = str(x_user_email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail="Missing X-User-Email")

    if settings.auth_mode == "dev" and settings.dev_auto_provision:
        role_hint = (request.headers.get(settings.dev_header_user_role) or "admin").strip().lower()
        org, user, mem = _provision(db, org_slug=org_slug, email=email, role_hint=role_hint)
    else:
        org = _resolve_org(db, org_slug=org_slug)
        user = _get_user_by_email(db, email=email)
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        mem = _get_membership(db, org_id=int(org.id), user_id=int(user.id))
        if mem is None:
            raise HTTPException(status_code=403, detail="Not a member of this org")

    return Principal(
        org_id=int(org.id),
        org_slug=str(org.slug),
        user_id=int(user.id),
        email=str(user.email),
        role=str(mem.role),
    )


def require_admin(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "admin")
    return p
