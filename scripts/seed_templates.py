"""
Seed script to install the built-in system templates.

Run this script after database initialization to create or refresh:
- Vehicle Daily Checklist
- Solar Installation Checklist
- Gas Installation Checklist

Template ids are fixed, so running it again updates the templates in place.

Usage:
    python -m scripts.seed_templates
"""
import asyncio

from checklist.core.database.engine import get_db, init_db
from checklist.features.templates.catalog import SYSTEM_TEMPLATES
from checklist.repository.base import Repository
from checklist.repository.sql import SqlRepository
from checklist.utils import get_logger


log = get_logger(__name__)


async def seed_templates(repository: Repository) -> int:
    """Upsert every system template; returns how many were written."""
    async with repository.transaction():
        for template in SYSTEM_TEMPLATES:
            existing = await repository.get_template(template.id)
            if existing is not None:
                template = template.model_copy(update={"version": existing.version + 1})
                log.debug(f"Template '{template.name}' exists, refreshing to version {template.version}")
            await repository.save_template(template)
            log.info(f"Seeded template: {template.name} ({template.category})")
    return len(SYSTEM_TEMPLATES)


async def main():
    """Main function to seed system templates."""
    log.info("Starting template seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            count = await seed_templates(SqlRepository(db))
            log.info(f"Template seeding completed successfully! ({count} templates)")
        except Exception as e:
            log.error(f"Error seeding templates: {e}", exc_info=True)
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
