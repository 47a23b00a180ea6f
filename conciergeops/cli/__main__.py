# conciergeops/cli/__main__.py
from __future__ import annotations

import argparse
import json
from datetime import date

from sqlalchemy import select

from conciergeops.cli.seed_demo import seed_demo
from conciergeops.db import Base, SessionLocal, engine
from conciergeops.logging_config import configure_logging
from conciergeops.middleware.correlation import sweep_context
from conciergeops.models import Organization
from conciergeops.services.conflict_service import detect_conflicts
from conciergeops.services.escalation_service import run_escalation_sweep
from conciergeops.services.recurrence_service import generate_due_occurrences
from conciergeops.services.reminder_service import run_reminder_sweep


def _print(payload: dict | list) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _run_sweep(name: str) -> dict:
    with sweep_context(name):
        db = SessionLocal()
        try:
            if name == "recurrences":
                return generate_due_occurrences(db).as_dict()
            if name == "escalation":
                return run_escalation_sweep(db).as_dict()
            return run_reminder_sweep(db).as_dict()
        finally:
            db.close()


def _conflicts(org_slug: str, start: date, end: date) -> list[dict]:
    db = SessionLocal()
    try:
        org = db.scalar(select(Organization).where(Organization.slug == org_slug))
        if org is None:
            raise SystemExit(f"unknown org slug: {org_slug}")
        return [c.as_dict() for c in detect_conflicts(db, org_id=int(org.id), start_date=start, end_date=end)]
    finally:
        db.close()


def main() -> None:
    p = argparse.ArgumentParser(prog="conciergeops")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db", help="create tables on the configured database (local/dev)")

    for name in ("recurrences", "escalation", "reminders"):
        sub.add_parser(name, help=f"run the {name} sweep once")

    c = sub.add_parser("conflicts", help="print schedule conflicts for one org")
    c.add_argument("--org-slug", required=True)
    c.add_argument("--start", required=True, type=date.fromisoformat)
    c.add_argument("--end", required=True, type=date.fromisoformat)

    s = sub.add_parser("seed", help="seed a demo org with sample data")
    s.add_argument("--org-slug", default="demo")
    s.add_argument("--org-name", default="Demo Conciergerie")
    s.add_argument("--domain", default="demo.local", help="email domain of the seeded members")
    s.add_argument("--no-samples", action="store_true")

    args = p.parse_args()
    configure_logging()

    if args.cmd == "init-db":
        Base.metadata.create_all(bind=engine)
        _print({"ok": True, "tables": sorted(Base.metadata.tables)})
    elif args.cmd in ("recurrences", "escalation", "reminders"):
        _print({"success": True, "sweep": args.cmd, **_run_sweep(args.cmd)})
    elif args.cmd == "conflicts":
        try:
            _print(_conflicts(args.org_slug, args.start, args.end))
        except ValueError as e:
            raise SystemExit(str(e))
    elif args.cmd == "seed":
        out = seed_demo(
            org_slug=args.org_slug,
            org_name=args.org_name,
            domain=args.domain,
            create_samples=(not args.no_samples),
        )
        _print({"ok": True, **out.as_dict()})


if __name__ == "__main__":
    main()
