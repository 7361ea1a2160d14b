#!/usr/bin/env python3
"""List all users and their linked provider accounts."""

from sqlalchemy import desc, select

from authbridge.db.session import SessionLocal
from authbridge.models.identity_models import User
from authbridge.services.identity_store import IdentityStore


def main():
    db = SessionLocal()
    try:
        users = list(db.scalars(select(User).order_by(desc(User.created_at))))
        store = IdentityStore(db)

        print('\n' + '=' * 80)
        print('USERS')
        print('=' * 80 + '\n')

        if not users:
            print('No users found in database.\n')
            return

        for i, user in enumerate(users, 1):
            accounts = store.get_accounts_by_user(user.uuid)
            print(f'{i}. {user.uuid}')
            print(f'   Created: {user.created_at}')
            if not accounts:
                print('   Accounts: none (orphaned, see cleanup_orphaned_users.py)')
            for account in accounts:
                print(f'   - {account.provider}: {account.identifier} (linked {account.created_at})')
            print('-' * 80)

        print(f'\nTotal Users: {len(users)}\n')
    finally:
        db.close()


if __name__ == '__main__':
    main()
