#!/usr/bin/env python3
"""
Migration script to link billing customers to Supabase auth users.

PROBLEM:
  Customers created by a webhook before the buyer signed up have no
  auth_user_id, so the dashboard cannot find their subscription by user id.

SOLUTION:
  Match customers.email against auth users (case-insensitive) and fill in
  customers.auth_user_id.

SAFETY:
  - Only rows with a NULL auth_user_id are touched
  - Can be run multiple times safely (idempotent)

Usage:
  python run_link_customer_auth_users.py --dry-run    # Preview changes without applying
  python run_link_customer_auth_users.py --apply      # Apply the migration
"""

import argparse
import os
from typing import Dict

from dotenv import load_dotenv
from supabase import create_client

BATCH_SIZE = 500
AUTH_USERS_PAGE_SIZE = 1000


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def load_auth_users(supabase) -> Dict[str, str]:
    """Map normalized email -> auth user id for every auth user."""
    users_by_email = {}
    page = 1

    while True:
        users = supabase.auth.admin.list_users(page=page, per_page=AUTH_USERS_PAGE_SIZE)
        for user in users or []:
            if user.email:
                users_by_email[normalize_email(user.email)] = user.id
        if not users or len(users) < AUTH_USERS_PAGE_SIZE:
            break
        page += 1

    return users_by_email


def iter_unlinked_customers(supabase):
    """Yield customers without an auth_user_id, batch by batch."""
    offset = 0
    while True:
        batch = supabase.table('customers').select(
            'customer_id, email'
        ).is_('auth_user_id', 'null').range(offset, offset + BATCH_SIZE - 1).execute()

        if not batch.data:
            break

        yield from batch.data

        if len(batch.data) < BATCH_SIZE:
            break
        offset += BATCH_SIZE


def find_links(supabase):
    """Return (matches, unmatched) where matches is a list of (customer, auth_user_id)."""
    users_by_email = load_auth_users(supabase)
    matches, unmatched = [], []

    for customer in iter_unlinked_customers(supabase):
        auth_user_id = users_by_email.get(normalize_email(customer.get('email')))
        if auth_user_id:
            matches.append((customer, auth_user_id))
        else:
            unmatched.append(customer)

    return matches, unmatched


def dry_run(supabase):
    """Preview what changes would be made without applying them."""
    print("=" * 60)
    print("DRY RUN - No changes will be made")
    print("=" * 60)

    matches, unmatched = find_links(supabase)
    print(f"\nCustomers that can be linked: {len(matches):,}")
    print(f"Customers with no matching auth user: {len(unmatched):,}")

    if matches:
        print("\nSample of links:")
        print("-" * 60)
        for customer, auth_user_id in matches[:5]:
            print(f"  {customer['customer_id']} ({customer['email']}) → {auth_user_id}")

    print("\n" + "=" * 60)
    print("To apply these changes, run with --apply flag")
    print("=" * 60)


def apply_migration(supabase):
    """Apply the migration to link customers."""
    print("=" * 60)
    print("APPLYING MIGRATION")
    print("=" * 60)

    matches, unmatched = find_links(supabase)
    linked_count = 0
    error_count = 0

    for customer, auth_user_id in matches:
        try:
            supabase.table('customers').update({
                'auth_user_id': auth_user_id
            }).eq('customer_id', customer['customer_id']).is_('auth_user_id', 'null').execute()
            linked_count += 1
        except Exception as e:
            print(f"  ERROR updating {customer['customer_id']}: {e}")
            error_count += 1

    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE")
    print("=" * 60)
    print(f"  Customers linked: {linked_count:,}")
    print(f"  Still unmatched: {len(unmatched):,}")
    print(f"  Errors: {error_count}")


def main():
    parser = argparse.ArgumentParser(description='Link customers.auth_user_id to Supabase auth users')
    parser.add_argument('--dry-run', action='store_true', help='Preview changes without applying')
    parser.add_argument('--apply', action='store_true', help='Apply the migration')
    args = parser.parse_args()

    if not args.dry_run and not args.apply:
        print("Please specify --dry-run or --apply")
        print("  --dry-run: Preview changes without applying")
        print("  --apply: Apply the migration")
        return

    load_dotenv()
    supabase_url = os.environ.get('SUPABASE_URL')
    service_key = os.environ.get('SUPABASE_SERVICE_ROLE_KEY')
    if not supabase_url or not service_key:
        print("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        return

    supabase = create_client(supabase_url, service_key)

    if args.dry_run:
        dry_run(supabase)
    elif args.apply:
        confirm = input("This will modify the database. Type 'yes' to confirm: ")
        if confirm.lower() == 'yes':
            apply_migration(supabase)
        else:
            print("Migration cancelled.")


if __name__ == '__main__':
    main()
