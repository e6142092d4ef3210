"""
Check that a user exists both at the auth provider and as a profile document,
and that the two share one id. Optionally set a new password.

Usage:
    python scripts/check_user.py <email> [--reset-password NEW_PASSWORD]
"""
import argparse
import asyncio
import os
import sys
from pprint import pprint

# --- START: Path Logic ---
script_path = os.path.abspath(__file__)
scripts_dir = os.path.dirname(script_path)
project_root = os.path.dirname(scripts_dir)
backend_dir = os.path.join(project_root, "backend")

if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)
# --- END: Path Logic ---

from dailypath.core.errors import AppError  # noqa: E402
from dailypath.db import crud  # noqa: E402
from dailypath.db.database import close_mongo_connection, connect_to_mongo  # noqa: E402
from dailypath.services import auth_provider  # noqa: E402
from dailypath.utils.periods import today_iso  # noqa: E402


async def check_user(email: str, new_password: str = None) -> bool:
    email = email.strip().lower()
    print(f"Checking user: {email}\n")

    profile = await crud.get_user_by_email(email)
    if profile is None:
        print("Profile: NOT found in the users collection")
        print("The provider account cannot be matched without a profile id.")
        return False

    print("Profile:")
    pprint(profile.model_dump(by_alias=True), sort_dicts=False)
    membership = await crud.get_active_membership(profile.id, today_iso())
    print(f"Active membership: {membership.period if membership else 'none'}")
    print("")

    try:
        account = await auth_provider.admin_get_user(profile.id)
    except AppError as e:
        print(f"Could not reach the auth provider: {e.message}")
        return False

    if account is None:
        print("Provider: NOT found. This user cannot log in.")
        return False

    print("Provider account:")
    print(f"  ID: {account.get('id')}")
    print(f"  Email: {account.get('email')}")
    print(f"  Email confirmed: {'Yes' if account.get('email_confirmed_at') else 'No'}")
    print(f"  Last sign in: {account.get('last_sign_in_at') or 'Never'}")

    ok = True
    if (account.get("email") or "").lower() != email:
        print("Warning: provider email differs from the profile email")
        ok = False
    if not account.get("email_confirmed_at"):
        print("Warning: email is not confirmed, the user may not be able to log in")
        ok = False
    if not profile.is_active:
        print("Warning: profile is deactivated, login is refused")
        ok = False

    if new_password:
        await auth_provider.admin_update_user(profile.id, {"password": new_password})
        print("Password updated.")
    return ok


async def main():
    parser = argparse.ArgumentParser(description="Check a user's provider account and profile")
    parser.add_argument("email")
    parser.add_argument("--reset-password", dest="new_password", default=None)
    args = parser.parse_args()

    if not await connect_to_mongo():
        print("Could not connect to the database. Check MONGODB_URL in backend/.env.")
        sys.exit(1)
    try:
        ok = await check_user(args.email, args.new_password)
    finally:
        await close_mongo_connection()
    print("\nCheck complete" if ok else "\nCheck found problems")
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    # For Windows compatibility with asyncio + Motor
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    asyncio.run(main())
