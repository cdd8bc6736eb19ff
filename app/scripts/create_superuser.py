"""
Create Superuser Script
Creates or replaces the single superuser. Until one exists the API reports
the system as locked and refuses every gated route.

Usage:
  python -m app.scripts.create_superuser
  python -m app.scripts.create_superuser --email admin@example.com --full-name "Admin" --yes
"""

import argparse
import getpass
import sys
from pathlib import Path
from typing import Dict, Optional

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from email_validator import EmailNotValidError, validate_email
from app.core.permissions import UserStatus
from app.database.supabase_client import SupabaseClient, get_service_supabase
from app.modules.audit.service import record_audit
from app.modules.users.service import delete_user_rows
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class ProvisioningError(Exception):
    pass


def check_password(password: str) -> Optional[str]:
    """Returns an error message, or None when the password is acceptable"""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def get_existing_superuser(supabase: Client) -> Optional[Dict]:
    result = supabase.table("u_users")\
        .select("id, email, auth_user_id")\
        .eq("is_superuser", True)\
        .limit(1)\
        .execute()
    return result.data[0] if result.data else None


def _find_auth_user_id(supabase: Client, email: str) -> Optional[str]:
    for user in supabase.auth.admin.list_users():
        if (user.email or "").lower() == email.lower():
            return user.id
    return None


def create_auth_user(supabase: Client, email: str, password: str, full_name: str) -> str:
    """Create the auth identity, or reset the password of an existing one"""
    attributes = {
        "email": email,
        "password": password,
        "email_confirm": True,
        "user_metadata": {"full_name": full_name, "is_superuser": True},
    }
    try:
        response = supabase.auth.admin.create_user(attributes)
        logger.info("Auth user created")
        return response.user.id
    except Exception as e:
        if "already been registered" not in str(e):
            raise ProvisioningError(f"Error creating auth user: {e}") from e

    logger.info("Auth user exists, updating password...")
    auth_user_id = _find_auth_user_id(supabase, email)
    if auth_user_id is None:
        raise ProvisioningError(f"Could not find existing auth user with email {email}")
    supabase.auth.admin.update_user_by_id(auth_user_id, {
        "password": password,
        "email_confirm": True,
        "user_metadata": {"full_name": full_name, "is_superuser": True},
    })
    return auth_user_id


def provision_superuser(supabase: Client, email: str, password: str, full_name: Optional[str] = None) -> Dict:
    """
    Replace any existing superuser with a new one; returns the u_users row.

    The new superuser is written before the old one is removed, so a failure
    part way through never leaves the system without a superuser.
    """
    full_name = full_name or email.split("@")[0]

    previous = supabase.table("u_users")\
        .select("id, email, auth_user_id")\
        .eq("is_superuser", True)\
        .execute().data or []

    auth_user_id = create_auth_user(supabase, email, password, full_name)

    row = {
        "auth_user_id": auth_user_id,
        "email": email,
        "full_name": full_name,
        "status": UserStatus.ACTIVE.value,
        "is_superuser": True
    }
    # A row may already exist for this identity; promote it in place
    current = supabase.table("u_users")\
        .select("id")\
        .eq("auth_user_id", auth_user_id)\
        .execute()
    if current.data:
        result = supabase.table("u_users")\
            .update(row)\
            .eq("id", current.data[0]["id"])\
            .execute()
    else:
        result = supabase.table("u_users").insert(row).execute()

    if not result.data:
        raise ProvisioningError("Failed to create u_users row")
    superuser = result.data[0]

    for old in previous:
        if old["id"] == superuser["id"]:
            continue
        logger.info(f"Removing previous superuser {old['email']}...")
        delete_user_rows(supabase, old["id"])
        if old.get("auth_user_id") and old["auth_user_id"] != auth_user_id:
            try:
                supabase.auth.admin.delete_user(old["auth_user_id"])
            except Exception as e:
                logger.warning(f"Could not delete auth user: {e}")

    record_audit(
        supabase,
        action="create",
        resource_type="superuser",
        resource_id=auth_user_id,
        resource_name=full_name,
        actor_id=auth_user_id,
        actor_email=email,
        new_values={"email": email, "full_name": full_name, "is_superuser": True}
    )

    logger.info(f"Superuser {email} created; the system is unlocked")
    return superuser


def _prompt_email() -> str:
    while True:
        email = input("Enter superuser email: ").strip()
        try:
            return validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            print(f"Invalid email: {e}")


def _prompt_password() -> str:
    while True:
        password = getpass.getpass("Enter password: ")
        error = check_password(password)
        if error:
            print(error)
            continue
        if password != getpass.getpass("Confirm password: "):
            print("Passwords do not match. Please try again.")
            continue
        return password


def _confirm(question: str) -> bool:
    return input(f"{question} (y/N): ").strip().lower() == "y"


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or replace the superuser")
    parser.add_argument("--email", type=str, default=None, help="Superuser email")
    parser.add_argument("--full-name", type=str, default=None, help="Display name (defaults to the email local part)")
    parser.add_argument("--password", type=str, default=None, help="Password (prompted when omitted)")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    args = parser.parse_args()

    if not SupabaseClient.has_service_client():
        logger.error("SUPABASE_SERVICE_ROLE_KEY is required to create auth users")
        return 1

    supabase = get_service_supabase()

    try:
        existing = get_existing_superuser(supabase)
        if existing:
            print(f"Existing superuser found: {existing['email']}")
            if not args.yes and not _confirm("Replace existing superuser?"):
                print("Aborted.")
                return 0

        if args.email:
            try:
                email = validate_email(args.email, check_deliverability=False).normalized
            except EmailNotValidError as e:
                logger.error(f"Invalid email: {e}")
                return 1
        else:
            email = _prompt_email()

        password = args.password or _prompt_password()
        error = check_password(password)
        if error:
            logger.error(error)
            return 1

        full_name = args.full_name
        if full_name is None and not args.yes:
            full_name = input("Enter full name (optional, press Enter to use email): ").strip() or None

        if not args.yes and not _confirm("This will replace any existing superuser account. Continue?"):
            print("Aborted.")
            return 0

        provision_superuser(supabase, email, password, full_name)
    except ProvisioningError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Error creating superuser: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
