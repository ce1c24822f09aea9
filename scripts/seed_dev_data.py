"""Seed a development tenant with languages, users, contacts and groups.

Run after `alembic upgrade head`:

    python scripts/seed_dev_data.py --shortcode demo

Safe to re-run: languages, contacts and groups are get-or-create, and users
are only created when the tenant is new.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Resolve project root so imports work when run from any cwd
_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_ROOT))

from db.connection import dispose_engine, get_db
import db.repositories.contacts as contacts_repo
import db.repositories.groups as groups_repo
import db.repositories.languages as languages_repo
import db.repositories.organizations as orgs_repo
import db.repositories.users as users_repo

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)

LANGUAGES = [("English", "en"), ("Hindi", "hi"), ("Spanish", "es")]

USERS = [
    {"name": "NGO Admin", "phone": "917834811114", "roles": ["admin"]},
    {"name": "NGO Staff", "phone": "917834811115", "roles": ["staff"]},
    {"name": "NGO Manager", "phone": "917834811116", "roles": ["manager"]},
]

CONTACTS = [
    {"name": "Adelle Cavin", "phone": "917834811231"},
    {"name": "Margarita Quinteros", "phone": "917834811232"},
    {"name": "Chrissy Cron", "phone": "917834811233"},
]

GROUPS = ["Optin contacts", "Restricted Group", "Default Group"]


async def seed(shortcode: str, name: str) -> None:
    async with get_db() as session:
        for label, locale in LANGUAGES:
            await languages_repo.get_or_create_language(session, label, locale)
        english = await languages_repo.get_by_locale(session, "en")

        org = await orgs_repo.get_by_shortcode(session, shortcode)
        is_new = org is None
        if is_new:
            org = await orgs_repo.create_organization(
                session, {"name": name, "shortcode": shortcode}
            )

        groups = [
            await groups_repo.get_or_create_group_by_label(session, label, org.id)
            for label in GROUPS
        ]
        if not groups[1].is_restricted:
            await groups_repo.update_group(session, groups[1], {"is_restricted": True})

        for attrs in CONTACTS:
            contact = await contacts_repo.upsert(
                session, {**attrs, "organization_id": org.id, "language_id": english.id}
            )
            await groups_repo.create_contact_group(
                session, {"contact_id": contact.id, "group_id": groups[0].id}
            )

        if is_new:
            for attrs in USERS:
                user = await users_repo.create_user(session, {**attrs, "organization_id": org.id})
                await groups_repo.update_user_groups(
                    session, user.id, [groups[2].id], org.id
                )

    logger.info("Seeded tenant %s (%s)", shortcode, org.id)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a development tenant.")
    parser.add_argument("--shortcode", default="demo", help="Tenant shortcode (default: demo)")
    parser.add_argument("--name", default="Demo NGO", help="Tenant display name")
    args = parser.parse_args()

    async def _run() -> None:
        try:
            await seed(args.shortcode, args.name)
        finally:
            await dispose_engine()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
