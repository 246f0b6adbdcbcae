from __future__ import annotations

import argparse

from equitystek.cli.seed import seed
from equitystek.db import Base, engine
from equitystek.logging_config import configure_logging


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m equitystek.cli", description="Seed plans and demo data")
    p.add_argument("--user-email", default=None, help="also create a demo owner with this email")
    p.add_argument("--user-name", default="Demo Owner")
    p.add_argument("--password", default=None)
    p.add_argument("--no-sample-property", action="store_true")
    p.add_argument("--create-tables", action="store_true", help="create tables without alembic (local sqlite)")
    args = p.parse_args()

    configure_logging()
    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    out = seed(
        user_email=args.user_email,
        user_name=args.user_name,
        password=args.password,
        create_sample_property=(not args.no_sample_property),
    )
    print(
        {
            "ok": True,
            "plans": out.plans,
            "user_email": out.user_email,
            "sample_property_id": out.property_id,
        }
    )


if __name__ == "__main__":
    main()
