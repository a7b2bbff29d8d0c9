"""
Entry point for the Pokedex aggregation core.

Configures logging, validates settings, opens a session, checks that
PokeAPI is reachable and logs a summary of the first listing page and the
saved rosters. Presentation layers drive `PokedexService` the same way.
"""

import asyncio
import logging
import sys

from config.settings import LOG_FILE, LOG_LEVEL, validate_settings
from pokedex.constants import INFO_LOADING, USER_ERROR_MESSAGE
from pokedex.errors import PokedexError
from pokedex.helpers import capitalize_pokemon_name
from pokedex.pipeline import ListingState
from pokedex.roster import type_distribution
from pokedex.service import PokedexService

# Setup logging FIRST
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(LOG_FILE, encoding="utf-8"),
    ],
)
logger = logging.getLogger("pokedex")

logging.getLogger().setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))


async def main() -> int:
    try:
        validate_settings()
    except ValueError as e:
        logger.critical(f"❌ Configuration validation failed: {e}")
        return 1

    async with PokedexService() as dex:
        if not await dex.client.validate_api_connectivity():
            logger.warning("PokeAPI is unreachable; listings will fail until it recovers")

        logger.info(INFO_LOADING)
        try:
            listing = await dex.listing(ListingState())
        except PokedexError as e:
            logger.error(
                f"{USER_ERROR_MESSAGE} ({e})",
                extra=dex.client.get_circuit_breaker_stats(),
            )
            return 1

        names = ", ".join(capitalize_pokemon_name(e.name) for e in listing.items)
        logger.info(
            f"Page {listing.page}/{listing.total_pages}: {names}",
            extra={"count": len(listing.items)},
        )

        for index, roster in enumerate(dex.rosters.rosters):
            logger.info(
                f"Saved roster #{index} {roster.name!r}: "
                f"{len(roster.members)} members, types {type_distribution(roster.slots)}"
            )

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
