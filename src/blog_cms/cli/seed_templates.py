"""
Command-line interface for managing template categories.

Template categories are shared defaults that every user receives a private copy of on first
access. This tool seeds them out-of-band, directly against MongoDB.

Examples:
    blog-cms-seed seed
    blog-cms-seed seed --file templates.json
    blog-cms-seed list

The JSON file holds a list of objects with a `name` and an optional `description`.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from blog_cms.config import Settings, settings
from blog_cms.database.manager import CATEGORIES_COLLECTION, DatabaseManager
from blog_cms.database.repositories import CategoryRepository
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import TEMPLATE_OWNER_ID

logger = get_logger(prefix="[SeedCLI]")

DEFAULT_TEMPLATES: List[Tuple[str, Optional[str]]] = [
    ("Technology", "Software, hardware and the industry around them"),
    ("Lifestyle", "Everyday living, habits and wellbeing"),
    ("Travel", "Trips, destinations and travel tips"),
    ("Food", "Recipes, restaurants and cooking"),
    ("Tutorials", "Step-by-step guides"),
]


def load_templates(path: str) -> List[Tuple[str, Optional[str]]]:
    """
    Read templates from a JSON file.

    Raises:
        ValueError: The file is not a list of objects with a non-empty `name`.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("Template file must contain a JSON list")

    templates = []
    for entry in data:
        name = entry.get("name", "").strip() if isinstance(entry, dict) else ""
        if not name:
            raise ValueError(f"Template entry without a name: {entry!r}")
        templates.append((name, entry.get("description")))
    return templates


class TemplateSeedCLI:
    """Seeds and lists template categories."""

    def __init__(self, app_settings: Settings):
        self.settings = app_settings

    async def _with_repository(self, action):
        db = DatabaseManager(self.settings)
        await db.connect()
        try:
            return await action(CategoryRepository(db.get_collection(CATEGORIES_COLLECTION)))
        finally:
            await db.disconnect()

    async def seed(self, templates: List[Tuple[str, Optional[str]]]) -> bool:
        """
        Upsert every template by name. Running it again only refreshes descriptions.

        Returns:
            True if successful, False otherwise
        """
        async def action(repository: CategoryRepository) -> bool:
            inserted = 0
            for name, description in templates:
                if await repository.upsert_template(name, description):
                    inserted += 1
            logger.info("Seeded %d templates (%d new, %d refreshed)", len(templates), inserted, len(templates) - inserted)
            return True

        return await self._with_repository(action)

    async def list_templates(self) -> bool:
        async def action(repository: CategoryRepository) -> bool:
            templates = await repository.find_by_owner(TEMPLATE_OWNER_ID)
            logger.info("Template categories (%d):", len(templates))
            for template in templates:
                logger.info("  - %s: %s", template.name, template.description or "")
            return True

        return await self._with_repository(action)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Blog CMS template category tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    seed_parser = subparsers.add_parser("seed", help="Create or refresh template categories")
    seed_parser.add_argument(
        "--file",
        help="JSON file with templates (default: built-in set)",
    )
    subparsers.add_parser("list", help="List template categories")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    cli = TemplateSeedCLI(settings)

    if args.command == "seed":
        try:
            templates = load_templates(args.file) if args.file else DEFAULT_TEMPLATES
        except (OSError, ValueError) as e:
            logger.error("Could not read templates: %s", e)
            sys.exit(1)
        success = asyncio.run(cli.seed(templates))
    elif args.command == "list":
        success = asyncio.run(cli.list_templates())
    else:
        parser.print_help()
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
