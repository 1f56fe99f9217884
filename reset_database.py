#!/usr/bin/env python3
"""Reset the Trackify database, prune stale codes, or seed the EmailJS configuration."""

import argparse
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from trackify import database
from trackify.config import Settings
from trackify.models import FORGOT_PASSWORD_ACTION
from trackify.services import email_service
from trackify.services.auth_service import AuthService


def reset_all_collections():
    """Drop all collections and start fresh."""
    db = database.get_database()

    print("🗑️  Clearing all collections...")
    for collection_name in database.ALL_COLLECTIONS:
        try:
            db[collection_name].drop()
            print(f"   ✓ Dropped {collection_name}")
        except Exception as e:
            print(f"   ⚠️  Could not drop {collection_name}: {e}")

    database.create_indexes()
    print("\n✅ Database reset complete!")


def seed_email_config():
    """Store the EmailJS account and forgot-password template from the environment."""
    required = ["EMAILJS_SERVICE_ID", "EMAILJS_PUBLIC_KEY", "EMAILJS_PRIVATE_KEY", "EMAILJS_FORGOT_PASSWORD_TEMPLATE_ID"]
    missing = [name for name in required if not os.getenv(name)]
    if missing:
        print(f"❌ Missing environment variables: {', '.join(missing)}")
        sys.exit(1)

    email_service.save_config(
        os.environ["EMAILJS_SERVICE_ID"],
        os.environ["EMAILJS_PUBLIC_KEY"],
        os.environ["EMAILJS_PRIVATE_KEY"],
    )
    email_service.save_template(FORGOT_PASSWORD_ACTION, os.environ["EMAILJS_FORGOT_PASSWORD_TEMPLATE_ID"])
    print("✅ EmailJS configuration stored.")


def cleanup_codes(settings):
    result = AuthService(settings).cleanup_expired_codes()
    print(f"✅ Expired {result['codes_expired']} codes, deleted {result['codes_deleted']}.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=["reset", "seed-email", "cleanup-codes"])
    args = parser.parse_args()

    settings = Settings.from_env()
    database.configure(settings)

    if args.command == "reset":
        print("🚀 Resetting database.")
        print("   This will DELETE ALL existing data.")
        confirm = input("\n⚠️  Are you sure? Type 'yes' to continue: ")
        if confirm.lower() == 'yes':
            reset_all_collections()
        else:
            print("❌ Reset cancelled.")
    elif args.command == "seed-email":
        seed_email_config()
    else:
        cleanup_codes(settings)
