# backend/rentledger/cli/__main__.py
from __future__ import annotations

import argparse

from rentledger.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="rentledger.cli", description="Seed a demo account with one lease.")
    p.add_argument("--org-slug", default="demo")
    p.add_argument("--org-name", default="demo")
    p.add_argument("--user-email", default="owner@demo.local")
    p.add_argument("--user-name", default="Demo Owner")
    p.add_argument("--no-sample-lease", action="store_true")
    args = p.parse_args()

    out = seed_demo(
        org_slug=args.org_slug,
        org_name=args.org_name,
        user_email=args.user_email,
        user_name=args.user_name,
        create_sample_lease=(not args.no_sample_lease),
    )
    print(
        {
            "ok": True,
            "org_slug": out.org_slug,
            "user_email": out.user_email,
            "sample_property_id": out.property_id,
            "sample_schedule_id": out.schedule_id,
        }
    )


if __name__ == "__main__":
    main()
