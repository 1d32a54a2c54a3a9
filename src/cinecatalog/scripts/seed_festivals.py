"""Seed script for London film festival editions.

Run with:
    python -m cinecatalog.scripts.seed_festivals
"""

import asyncio
import logging
from datetime import date

from sqlalchemy import select

from cinecatalog.database import AsyncSessionLocal
from cinecatalog.models.festival import Festival
from cinecatalog.services.festival_config import slug_base_of

logger = logging.getLogger(__name__)

# `venues` overrides the tagging config's venue list for that edition.
FESTIVAL_SEEDS: list[dict] = [
    {
        "slug": "lsff-2026",
        "name": "London Short Film Festival 2026",
        "short_name": "LSFF",
        "start_date": date(2026, 1, 23),
        "end_date": date(2026, 2, 1),
        "venues": ["ica", "bfi-southbank", "rio-dalston", "rich-mix"],
        "website": "https://shortfilms.org.uk",
    },
    {
        "slug": "bfi-flare-2026",
        "name": "BFI Flare 2026",
        "short_name": "Flare",
        "start_date": date(2026, 3, 18),
        "end_date": date(2026, 3, 29),
        "venues": ["bfi-southbank"],
        "website": "https://whatson.bfi.org.uk/flare/Online/default.asp",
    },
    {
        "slug": "sundance-london-2026",
        "name": "Sundance Film Festival: London 2026",
        "short_name": "Sundance London",
        "start_date": date(2026, 5, 28),
        "end_date": date(2026, 5, 31),
        "venues": ["curzon-soho", "picturehouse-central"],
        "website": "https://www.sundance.org/festivals/london",
    },
    {
        "slug": "raindance-2026",
        "name": "Raindance Film Festival 2026",
        "short_name": "Raindance",
        "start_date": date(2026, 6, 17),
        "end_date": date(2026, 6, 28),
        "venues": ["curzon-soho", "vue-piccadilly"],
        "website": "https://raindance.org/festival",
    },
    {
        "slug": "liff-2026",
        "name": "London Indian Film Festival 2026",
        "short_name": "LIFF",
        "start_date": date(2026, 6, 25),
        "end_date": date(2026, 7, 6),
        "venues": ["genesis"],
        "website": "https://londonindianfilmfestival.co.uk",
    },
    {
        "slug": "eeff-2026",
        "name": "East End Film Festival 2026",
        "short_name": "EEFF",
        "start_date": date(2026, 7, 2),
        "end_date": date(2026, 7, 12),
        "venues": ["genesis", "rio-dalston", "rich-mix"],
        "website": "https://eastendfilmfestival.com",
    },
    {
        "slug": "frightfest-2026",
        "name": "FrightFest 2026",
        "short_name": "FrightFest",
        "start_date": date(2026, 8, 27),
        "end_date": date(2026, 8, 31),
        "venues": ["vue-leicester-square", "prince-charles"],
        "website": "https://www.frightfest.co.uk",
    },
    {
        "slug": "open-city-2026",
        "name": "Open City Documentary Festival 2026",
        "short_name": "Open City Docs",
        "start_date": date(2026, 9, 9),
        "end_date": date(2026, 9, 13),
        "venues": ["ica", "close-up-cinema", "bfi-southbank"],
        "website": "https://opencitylondon.com",
    },
    {
        "slug": "bfi-lff-2026",
        "name": "BFI London Film Festival 2026",
        "short_name": "LFF",
        "start_date": date(2026, 10, 7),
        "end_date": date(2026, 10, 18),
        "venues": [
            "bfi-southbank",
            "bfi-imax",
            "curzon-soho",
            "curzon-mayfair",
            "vue-leicester-square",
            "odeon-luxe-leicester-square",
        ],
        "website": "https://www.bfi.org.uk/london-film-festival",
    },
    {
        "slug": "docnroll-2026",
        "name": "Doc'n Roll Film Festival 2026",
        "short_name": "Doc'n Roll",
        "start_date": date(2026, 10, 28),
        "end_date": date(2026, 11, 9),
        "venues": ["barbican", "bfi-southbank", "rio-dalston"],
        "website": "https://www.docnrollfestival.com",
    },
    {
        "slug": "lkff-2026",
        "name": "London Korean Film Festival 2026",
        "short_name": "LKFF",
        "start_date": date(2026, 11, 5),
        "end_date": date(2026, 11, 26),
        "venues": ["prince-charles", "bfi-southbank", "genesis"],
        "website": "https://koreanfilm.co.uk",
    },
    {
        "slug": "ukjff-2026",
        "name": "UK Jewish Film Festival 2026",
        "short_name": "UKJFF",
        "start_date": date(2026, 11, 11),
        "end_date": date(2026, 11, 22),
        "venues": ["jw3", "barbican", "curzon-soho"],
        "website": "https://ukjewishfilm.org",
    },
    {
        "slug": "liaf-2026",
        "name": "London International Animation Festival 2026",
        "short_name": "LIAF",
        "start_date": date(2026, 12, 3),
        "end_date": date(2026, 12, 6),
        "venues": ["barbican", "bfi-southbank", "ica"],
        "website": "https://liaf.org.uk",
    },
]

SEEDED_SLUG_BASES: frozenset[str] = frozenset(slug_base_of(s["slug"]) for s in FESTIVAL_SEEDS)


async def seed_festivals() -> None:
    """Insert or refresh festival editions by slug."""
    async with AsyncSessionLocal() as session:
        for seed in FESTIVAL_SEEDS:
            result = await session.execute(select(Festival).where(Festival.slug == seed["slug"]))
            festival = result.scalar_one_or_none()

            if festival:
                for key, value in seed.items():
                    setattr(festival, key, value)
                logger.info(f"Updated festival: {seed['name']}")
            else:
                session.add(
                    Festival(id=seed["slug"], year=seed["start_date"].year, is_active=True, **seed)
                )
                logger.info(f"Added festival: {seed['name']}")

        await session.commit()
        logger.info("Festival seeding complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(seed_festivals())
