"""
Provision accounts out of band (e.g. the first admin). Run from project root:
  python -m storefront.scripts.create_user EMAIL USERNAME PASSWORD [role]
  python -m storefront.scripts.create_user --promote EMAIL
Example:
  python -m storefront.scripts.create_user owner@shop.example owner your-secure-password admin
"""
import argparse
import sys

from storefront.core.database import SessionLocal
from storefront.core.errors import ConflictError, NotFoundError, ValidationError
from storefront.models import ROLE_ADMIN, ROLE_CUSTOMER
from storefront.schemas.auth import SignupRequest
from storefront.schemas.errors import parse_request
from storefront.services.users import get_user_by_email, insert_user, set_user_role


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a storefront user or promote one to admin.")
    parser.add_argument("--promote", metavar="EMAIL", help="Give an existing user the admin role")
    parser.add_argument("email", nargs="?", help="Email address")
    parser.add_argument("username", nargs="?", help="Display name (1-255 chars)")
    parser.add_argument("password", nargs="?", help="Password (6-128 chars)")
    parser.add_argument("role", nargs="?", default=ROLE_CUSTOMER, choices=[ROLE_CUSTOMER, ROLE_ADMIN])
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        if args.promote:
            try:
                user = set_user_role(db, args.promote, ROLE_ADMIN)
            except NotFoundError as e:
                print(e.message, file=sys.stderr)
                return 1
            print(f"User '{user.email}' now has role '{user.role}'.")
            return 0

        if not (args.email and args.username and args.password):
            parser.error("email, username and password are required unless --promote is given")

        try:
            request = parse_request(
                SignupRequest,
                {
                    "email": args.email,
                    "username": args.username,
                    "password": args.password,
                    "confirmPassword": args.password,
                },
            )
        except ValidationError as e:
            for item in e.errors:
                print(item["msg"], file=sys.stderr)
            return 1

        if get_user_by_email(db, request.email) is not None:
            print(f"User '{request.email}' already exists.", file=sys.stderr)
            return 1
        try:
            user = insert_user(
                db,
                email=request.email,
                username=request.username,
                password=request.password,
                role=args.role,
            )
            db.commit()
        except ConflictError:
            print(f"User '{request.email}' already exists.", file=sys.stderr)
            return 1
        print(f"Created user '{user.email}' with role '{user.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
