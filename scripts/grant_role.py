#!/usr/bin/env python3
"""Grant a review role (ARCHITECT, EAO, ADMIN) to a user, creating the user if needed.

Usage:
  python scripts/grant_role.py --email architect@example.com --role ARCHITECT --password s3cret
"""

import sys
import os
import argparse
from pathlib import Path

from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archreview.models import Role, User
from app.archreview.modules.solution_review.transitions import ReviewRole
from scripts._db_utils import script_session


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", required=True, choices=[r.value for r in ReviewRole])
    parser.add_argument("--password", help="Password for a newly created user")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///archreview.db").strip()
    email = args.email.strip().lower()
    with script_session(db_url) as s:
        role = s.query(Role).filter(Role.key == args.role).one_or_none()
        if not role:
            print(f"Role not found: {args.role}. Run python scripts/init_db.py first.")
            return
        user = s.query(User).filter(User.email.ilike(email)).one_or_none()
        if not user:
            if not args.password:
                print(f"User not found: {email} (pass --password to create it)")
                return
            user = User(email=email, password_hash=generate_password_hash(args.password), is_active=True)
            s.add(user)
        if role in (user.roles or []):
            print(f"User already has role {args.role}: {email}")
            return
        user.roles.append(role)
    print(f"Role {args.role} granted to {email}")


if __name__ == "__main__":
    main()
