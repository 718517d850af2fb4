"""Create the users collection, apply its validator and unique indexes.

Usage:
  python scripts/create_collections.py --mongo-uri <uri> --db <name>
If --mongo-uri / --db are omitted the app Config defaults will be used.

The application checks for an existing email/username before inserting, but
two concurrent registrations can both pass that check. The unique indexes
created here make the database reject the second insert.
The script is idempotent - safe to run multiple times.
"""
import argparse
import os
import sys
from pathlib import Path
from pymongo import MongoClient, errors

# Ensure the repository root is on sys.path so `backend` package imports work
# when this script is executed directly (e.g., inside a venv).
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.signup.config import Config
from backend.signup.db import ensure_user_indexes
from backend.signup.schemas import users_validator


def main():
    p = argparse.ArgumentParser()
    p.add_argument('--mongo-uri')
    p.add_argument('--db')
    p.add_argument('--collection')
    p.add_argument('--recreate', action='store_true', help='Drop the existing collection before creating it (use with caution)')
    args = p.parse_args()

    mongo_uri = args.mongo_uri or os.environ.get('MONGO_URI') or Config.MONGO_URI
    db_name = args.db or os.environ.get('MONGO_DB') or Config.MONGO_DB
    name = args.collection or Config.MONGO_USERS_COLLECTION

    client = MongoClient(mongo_uri)
    db = client[db_name]
    validator = users_validator(Config.AGE_MIN, Config.AGE_MAX)

    try:
        if args.recreate and name in db.list_collection_names():
            print(f"Dropping existing collection: {name}")
            db.drop_collection(name)
        # If collection exists, use collMod to apply validator
        if name in db.list_collection_names():
            print(f"Updating validator for existing collection: {name}")
            try:
                db.command({'collMod': name, 'validator': validator, 'validationLevel': 'moderate'})
            except errors.OperationFailure as e:
                print(f"  collMod failed for {name}: {e}")
        else:
            print(f"Creating collection: {name}")
            db.create_collection(name, validator=validator)
    except errors.PyMongoError as e:
        print(f"Failed to create/update {name}: {e}")
        sys.exit(1)

    try:
        ensure_user_indexes(db[name])
        print(f"Created unique indexes on {name}.email and {name}.username")
    except errors.PyMongoError as e:
        # Existing duplicates make a unique index build fail; clean them up first.
        print(f"Error creating {name} indexes: {e}")
        sys.exit(1)

    # Verification
    print('\nVerification:')
    for idx in db[name].list_indexes():
        print(' ', idx['name'], idx.get('key'), 'unique' if idx.get('unique') else '')


if __name__ == '__main__':
    main()
