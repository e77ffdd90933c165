import uuid
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from . import config
from .errors import InvalidMedal, MatchNotFound, PlayerNotFound, TournamentNotFound
from .logging_config import get_logger
from .models import MEDAL_TYPES, MatchRecord, Medal, Player, Tournament

log = get_logger(__name__)

# Global variable for database path (will be set by init_db)
DB_PATH = config.DATABASE_PATH

SEAT_COLUMNS = (
    "player1",
    "player2",
    "team1_player1",
    "team1_player2",
    "team2_player1",
    "team2_player2",
)
TOURNAMENT_STATUSES = ("draft", "completed")
RESULT_COLUMNS = ("score", "winner", "round")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


async def init_db(db_path: str = DB_PATH):
    """Initialize the database with required tables."""
    global DB_PATH
    DB_PATH = db_path

    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                gender TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        # Medal order is insertion order (id); edit/remove address medals by position
        await db.execute("""
            CREATE TABLE IF NOT EXISTS medals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                player_id TEXT NOT NULL,
                type TEXT NOT NULL,
                tournament_name TEXT,
                awarded_at TEXT NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS tournaments (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'draft',
                created_at TEXT NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS matches (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                tournament_id TEXT NOT NULL,
                match_type TEXT NOT NULL,
                score TEXT,
                winner TEXT,
                round TEXT,
                player1 TEXT,
                player2 TEXT,
                team1_player1 TEXT,
                team1_player2 TEXT,
                team2_player1 TEXT,
                team2_player2 TEXT,
                created_at TEXT NOT NULL
            )
        """)
        await db.execute("CREATE INDEX IF NOT EXISTS idx_matches_tournament ON matches(tournament_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_medals_player ON medals(player_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_tournaments_status ON tournaments(status, date)")
        await db.commit()
    log.debug("Database initialized path=%s", DB_PATH)


# ========================================
# Players and medals
# ========================================

async def add_player(name: str, gender: str = "", player_id: str | None = None) -> str:
    """Insert a player and return its ID."""
    pid = player_id or _new_id()
    async with aiosqlite.connect(DB_PATH) as db:
        now = _now()
        await db.execute(
            "INSERT INTO players (id, name, gender, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (pid, name, gender or "", now, now),
        )
        await db.commit()
    log.debug("Inserted player id=%s name=%s gender=%s", pid, name, gender)
    return pid


async def _medals_by_player(db: aiosqlite.Connection, player_ids: Optional[list[str]] = None) -> dict[str, list[Medal]]:
    query = "SELECT player_id, type, tournament_name FROM medals"
    params: tuple = ()
    if player_ids is not None:
        query += f" WHERE player_id IN ({','.join('?' * len(player_ids))})"
        params = tuple(player_ids)
    query += " ORDER BY id"
    out: dict[str, list[Medal]] = {}
    async with db.execute(query, params) as cursor:
        async for row in cursor:
            out.setdefault(row["player_id"], []).append(Medal(row["type"], row["tournament_name"]))
    return out


async def get_player(player_id: str) -> Player | None:
    """Get a player with medals by ID."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM players WHERE id = ?", (player_id,)) as cursor:
            row = await cursor.fetchone()
        if not row:
            log.debug("Fetched player id=%s -> found=False", player_id)
            return None
        medals = await _medals_by_player(db, [player_id])
    return Player(row["id"], row["name"], row["gender"], medals.get(player_id, []))


async def all_players() -> list[Player]:
    """All players with their medals, in insertion order."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM players ORDER BY rowid") as cursor:
            rows = await cursor.fetchall()
        medals = await _medals_by_player(db)
    out = [Player(r["id"], r["name"], r["gender"], medals.get(r["id"], [])) for r in rows]
    log.debug("All players -> %s", len(out))
    return out


async def _medal_ids(db: aiosqlite.Connection, player_id: str) -> list[int]:
    async with db.execute("SELECT 1 FROM players WHERE id = ?", (player_id,)) as cursor:
        if await cursor.fetchone() is None:
            raise PlayerNotFound(player_id)
    async with db.execute("SELECT id FROM medals WHERE player_id = ? ORDER BY id", (player_id,)) as cursor:
        return [row[0] for row in await cursor.fetchall()]


def _medal_id_at(ids: list[int], index: int) -> int:
    if not ids:
        raise InvalidMedal("Player has no medals")
    if index < 0 or index >= len(ids):
        raise InvalidMedal("Invalid medal index")
    return ids[index]


async def award_medal(player_id: str, medal_type: str, tournament_name: str | None = None) -> Player:
    """Append a medal to a player and return the updated player."""
    if medal_type not in MEDAL_TYPES:
        raise InvalidMedal("Medal must be gold, silver, or bronze")
    async with aiosqlite.connect(DB_PATH) as db:
        await _medal_ids(db, player_id)
        now = _now()
        await db.execute(
            "INSERT INTO medals (player_id, type, tournament_name, awarded_at) VALUES (?, ?, ?, ?)",
            (player_id, medal_type, tournament_name or None, now),
        )
        await db.execute("UPDATE players SET updated_at = ? WHERE id = ?", (now, player_id))
        await db.commit()
    log.info("%s medal awarded player=%s tournament=%s", medal_type, player_id, tournament_name)
    return await get_player(player_id)


async def edit_medal(player_id: str, index: int, tournament_name: str | None) -> Player:
    """Change the tournament annotation of the medal at `index`."""
    async with aiosqlite.connect(DB_PATH) as db:
        medal_id = _medal_id_at(await _medal_ids(db, player_id), index)
        await db.execute(
            "UPDATE medals SET tournament_name = ? WHERE id = ?",
            (tournament_name or None, medal_id),
        )
        await db.execute("UPDATE players SET updated_at = ? WHERE id = ?", (_now(), player_id))
        await db.commit()
    log.info("Medal edited player=%s index=%s tournament=%s", player_id, index, tournament_name)
    return await get_player(player_id)


async def remove_medal(player_id: str, index: int) -> Medal:
    """Delete the medal at `index` and return it."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        medal_id = _medal_id_at(await _medal_ids(db, player_id), index)
        async with db.execute("SELECT type, tournament_name FROM medals WHERE id = ?", (medal_id,)) as cursor:
            row = await cursor.fetchone()
        await db.execute("DELETE FROM medals WHERE id = ?", (medal_id,))
        await db.execute("UPDATE players SET updated_at = ? WHERE id = ?", (_now(), player_id))
        await db.commit()
    removed = Medal(row["type"], row["tournament_name"])
    log.info("%s medal removed player=%s index=%s", removed.type, player_id, index)
    return removed


# ========================================
# Tournaments and matches
# ========================================

async def add_tournament(name: str, date: str, status: str = "draft", tournament_id: str | None = None) -> str:
    """Insert a tournament and return its ID. `date` is an ISO date string."""
    tid = tournament_id or _new_id()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "INSERT INTO tournaments (id, name, date, status, created_at) VALUES (?, ?, ?, ?, ?)",
            (tid, name, date, status, _now()),
        )
        await db.commit()
    log.debug("Inserted tournament id=%s name=%s date=%s status=%s", tid, name, date, status)
    return tid


async def add_match(
    tournament_id: str,
    match_type: str,
    score: str | None = None,
    winner: str | None = None,
    round: str | None = None,
    **seats: str | None,
) -> int:
    """Append a match to a tournament and return its ID.

    Seats are passed by column name: player1/player2 for singles,
    team1_player1 .. team2_player2 for doubles.
    """
    unknown = set(seats) - set(SEAT_COLUMNS)
    if unknown:
        raise TypeError(f"Unknown seat(s): {', '.join(sorted(unknown))}")
    values = [seats.get(c) for c in SEAT_COLUMNS]
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute("SELECT 1 FROM tournaments WHERE id = ?", (tournament_id,)) as cursor:
            if await cursor.fetchone() is None:
                raise TournamentNotFound(tournament_id)
        cursor = await db.execute(
            f"""
            INSERT INTO matches (tournament_id, match_type, score, winner, round, {', '.join(SEAT_COLUMNS)}, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (tournament_id, match_type, score, winner, round, *values, _now()),
        )
        await db.commit()
        new_id = cursor.lastrowid if cursor.lastrowid is not None else -1
    log.debug("Inserted match id=%s tournament=%s type=%s winner=%s score=%s", new_id, tournament_id, match_type, winner, score)
    return new_id


async def set_tournament_status(tournament_id: str, status: str) -> None:
    if status not in TOURNAMENT_STATUSES:
        raise ValueError(f"Unknown tournament status: {status}")
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute("UPDATE tournaments SET status = ? WHERE id = ?", (status, tournament_id))
        await db.commit()
        if cursor.rowcount == 0:
            raise TournamentNotFound(tournament_id)
    log.info("Tournament %s status -> %s", tournament_id, status)


async def update_match(tournament_id: str, index: int, **fields: str | None) -> MatchRecord:
    """Change the result fields of the tournament's `index`-th match (insertion order).

    Only score, winner and round can be changed; fields not passed keep their value.
    """
    unknown = set(fields) - set(RESULT_COLUMNS)
    if unknown:
        raise TypeError(f"Unknown match field(s): {', '.join(sorted(unknown))}")
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT 1 FROM tournaments WHERE id = ?", (tournament_id,)) as cursor:
            if await cursor.fetchone() is None:
                raise TournamentNotFound(tournament_id)
        async with db.execute(
            "SELECT id FROM matches WHERE tournament_id = ? ORDER BY id", (tournament_id,)
        ) as cursor:
            ids = [row["id"] for row in await cursor.fetchall()]
        if index < 0 or index >= len(ids):
            raise MatchNotFound(tournament_id, index)
        if fields:
            assignments = ", ".join(f"{c} = ?" for c in fields)
            await db.execute(f"UPDATE matches SET {assignments} WHERE id = ?", (*fields.values(), ids[index]))
            await db.commit()
        async with db.execute("SELECT * FROM matches WHERE id = ?", (ids[index],)) as cursor:
            m = await cursor.fetchone()
    log.info("Match %s of tournament %s updated: %s", index, tournament_id, fields)
    return _match_from_row(m)


async def delete_tournament(tournament_id: str) -> None:
    """Delete a tournament together with its matches."""
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute("DELETE FROM tournaments WHERE id = ?", (tournament_id,))
        if cursor.rowcount == 0:
            raise TournamentNotFound(tournament_id)
        await db.execute("DELETE FROM matches WHERE tournament_id = ?", (tournament_id,))
        await db.commit()
    log.info("Tournament %s deleted", tournament_id)


def _match_from_row(m: aiosqlite.Row) -> MatchRecord:
    return MatchRecord(
        match_type=m["match_type"],
        score=m["score"],
        winner=m["winner"],
        round=m["round"],
        **{c: m[c] for c in SEAT_COLUMNS},
    )


async def _load_tournaments(db: aiosqlite.Connection, rows) -> list[Tournament]:
    tournaments = [Tournament(r["id"], r["name"], r["date"], r["status"]) for r in rows]
    if not tournaments:
        return tournaments
    by_id = {t.id: t for t in tournaments}
    placeholders = ",".join("?" * len(by_id))
    async with db.execute(
        f"SELECT * FROM matches WHERE tournament_id IN ({placeholders}) ORDER BY id",
        tuple(by_id),
    ) as cursor:
        async for m in cursor:
            by_id[m["tournament_id"]].matches.append(_match_from_row(m))
    return tournaments


async def completed_tournaments() -> list[Tournament]:
    """All completed tournaments with their matches, newest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM tournaments WHERE status = 'completed' ORDER BY date DESC, created_at DESC"
        ) as cursor:
            rows = await cursor.fetchall()
        out = await _load_tournaments(db, rows)
    log.debug("Completed tournaments -> %s", len(out))
    return out


async def tournaments_for_player(player_id: str, limit: int = 10) -> list[Tournament]:
    """Most recent completed tournaments in which the player occupies any seat of any match."""
    seat_match = " OR ".join(f"{c} = ?" for c in SEAT_COLUMNS)
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            f"""
            SELECT * FROM tournaments
            WHERE status = 'completed' AND id IN (
                SELECT tournament_id FROM matches WHERE {seat_match}
            )
            ORDER BY date DESC, created_at DESC
            LIMIT ?
            """,
            (*([player_id] * len(SEAT_COLUMNS)), limit),
        ) as cursor:
            rows = await cursor.fetchall()
        out = await _load_tournaments(db, rows)
    log.debug("Tournaments for player=%s limit=%s -> %s", player_id, limit, len(out))
    return out
