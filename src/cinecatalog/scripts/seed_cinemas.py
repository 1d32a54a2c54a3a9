"""Seed script to populate the venue registry.

Run with:
    python -m cinecatalog.scripts.seed_cinemas
"""

import asyncio
import logging

from cinecatalog.database import AsyncSessionLocal
from cinecatalog.models.cinema import Cinema

logger = logging.getLogger(__name__)

# Every venue a scraper reports against. `chain` groups venues whose
# listings volumes are compared by the health monitor.
VENUES: list[dict[str, str | None]] = [
    # BFI
    {"id": "bfi-southbank", "name": "BFI Southbank", "chain": "bfi", "website": "https://whatson.bfi.org.uk"},
    {"id": "bfi-imax", "name": "BFI IMAX", "chain": "bfi", "website": "https://whatson.bfi.org.uk/imax"},
    # Curzon
    {"id": "curzon-soho", "name": "Curzon Soho", "chain": "curzon", "website": "https://www.curzon.com/venues/soho"},
    {"id": "curzon-mayfair", "name": "Curzon Mayfair", "chain": "curzon", "website": "https://www.curzon.com/venues/mayfair"},
    {"id": "curzon-bloomsbury", "name": "Curzon Bloomsbury", "chain": "curzon", "website": "https://www.curzon.com/venues/bloomsbury"},
    {"id": "curzon-aldgate", "name": "Curzon Aldgate", "chain": "curzon", "website": "https://www.curzon.com/venues/aldgate"},
    # Picturehouse
    {"id": "picturehouse-central", "name": "Picturehouse Central", "chain": "picturehouse", "website": "https://www.picturehouses.com/cinema/picturehouse-central"},
    {"id": "hackney-picturehouse", "name": "Hackney Picturehouse", "chain": "picturehouse", "website": "https://www.picturehouses.com/cinema/hackney-picturehouse"},
    {"id": "ritzy", "name": "Ritzy Picturehouse", "chain": "picturehouse", "website": "https://www.picturehouses.com/cinema/the-ritzy"},
    # Multiplexes that host festival screenings
    {"id": "vue-leicester-square", "name": "Vue West End", "chain": "vue", "website": "https://www.myvue.com/cinema/london-west-end"},
    {"id": "vue-piccadilly", "name": "Vue Piccadilly", "chain": "vue", "website": "https://www.myvue.com/cinema/london-piccadilly"},
    {"id": "odeon-luxe-leicester-square", "name": "ODEON Luxe Leicester Square", "chain": "odeon", "website": "https://www.odeon.co.uk/cinemas/leicester-square/"},
    # Independents
    {"id": "prince-charles", "name": "Prince Charles Cinema", "chain": None, "website": "https://princecharlescinema.com"},
    {"id": "genesis", "name": "Genesis Cinema", "chain": None, "website": "https://www.genesiscinema.co.uk"},
    {"id": "ica", "name": "ICA", "chain": None, "website": "https://www.ica.art/films"},
    {"id": "rio-dalston", "name": "Rio Cinema", "chain": None, "website": "https://riocinema.org.uk"},
    {"id": "rich-mix", "name": "Rich Mix", "chain": None, "website": "https://richmix.org.uk"},
    {"id": "cine-lumiere", "name": "Ciné Lumière", "chain": None, "website": "https://www.institut-francais.org.uk/cine-lumiere/"},
    {"id": "close-up-cinema", "name": "Close-Up Cinema", "chain": None, "website": "https://www.closeupfilmcentre.com"},
    {"id": "barbican", "name": "Barbican Cinema", "chain": None, "website": "https://www.barbican.org.uk/whats-on/cinema"},
    {"id": "garden", "name": "The Garden Cinema", "chain": None, "website": "https://www.thegardencinema.co.uk"},
    {"id": "nickel", "name": "The Nickel", "chain": None, "website": "https://thenickel.co.uk"},
    {"id": "jw3", "name": "JW3", "chain": None, "website": "https://www.jw3.org.uk/cinema"},
]

VENUE_IDS: frozenset[str] = frozenset(v["id"] for v in VENUES)


async def seed_cinemas() -> None:
    """Seed the database with the venue registry, leaving existing rows alone."""
    async with AsyncSessionLocal() as session:
        added = 0
        for venue in VENUES:
            existing = await session.get(Cinema, venue["id"])
            if existing:
                logger.info(f"Cinema {venue['id']} already exists, skipping")
                continue

            session.add(Cinema(**venue))
            added += 1
            logger.info(f"Added cinema: {venue['name']}")

        await session.commit()
        logger.info(f"Cinema seeding complete: {added} added")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(seed_cinemas())
