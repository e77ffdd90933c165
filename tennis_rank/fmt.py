from .models import Medal, PlayerRanking

MEDAL_EMOJI = {"gold": "🥇", "silver": "🥈", "bronze": "🥉"}


def performance(won: int, played: int) -> str:
	"""Per-tournament record shown as wins/played, e.g. 2/3."""
	return f"{won}/{played}"


def medal_emoji(medal_type: str) -> str:
	return MEDAL_EMOJI.get(medal_type, "")


def medals_str(medals: list[Medal]) -> str:
	return "".join(medal_emoji(m.type) for m in medals)


LEADERBOARD_HEADERS = ["Rank", "Player", "Points", "W", "L", "Win %", "Events", "Medals"]


def leaderboard_table(rankings: list[PlayerRanking]) -> str:
	"""Leaderboard with one row per player; tied players show the same rank."""
	rows = [
		[
			str(r.rank),
			r.player_name,
			str(r.total_points),
			str(r.matches_won),
			str(r.matches_lost),
			f"{r.win_rate:.2f}",
			str(r.tournaments_played),
			medals_str(r.medals),
		]
		for r in rankings
	]
	widths = [max(len(cell) for cell in col) for col in zip(LEADERBOARD_HEADERS, *rows)]
	lines = [" | ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in [LEADERBOARD_HEADERS, *rows]]
	lines.insert(1, "-+-".join("-" * w for w in widths))
	return "\n".join(lines)
