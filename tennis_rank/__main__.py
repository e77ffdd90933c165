"""Print the current leaderboard: python -m tennis_rank [--gender female] [--limit 10]"""

import argparse
import asyncio

from . import config, db
from .fmt import leaderboard_table
from .logging_config import setup_logging
from .ranking import RankingEngine


async def main(gender: str | None, limit: int | None, db_path: str) -> int:
    await db.init_db(db_path)
    stats = await RankingEngine().calculate_rankings(gender=gender, limit=limit)
    print(f"{stats.total_tournaments} completed tournaments, {stats.total_matches} matches")
    if not stats.rankings:
        print("No ranked players yet.")
        return 0
    print(leaderboard_table(stats.rankings))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(prog="tennis_rank", description="Show club rankings")
    parser.add_argument("--gender", choices=("male", "female"))
    parser.add_argument("--limit", type=int)
    parser.add_argument("--db", default=config.DATABASE_PATH, help="sqlite database path")
    args = parser.parse_args()
    setup_logging()
    raise SystemExit(asyncio.run(main(args.gender, args.limit, args.db)))
