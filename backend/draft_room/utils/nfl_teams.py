"""NFL team abbreviations used as entity affiliations."""

from __future__ import annotations

NFL_TEAMS: set[str] = {
    "ARI", "ATL", "BAL", "BUF", "CAR", "CHI", "CIN", "CLE",
    "DAL", "DEN", "DET", "GB", "HOU", "IND", "JAX", "KC",
    "LAC", "LAR", "LV", "MIA", "MIN", "NE", "NO", "NYG",
    "NYJ", "PHI", "PIT", "SEA", "SF", "TB", "TEN", "WAS",
}

# Common alternate abbreviations used by different data sources
NFL_TEAM_ALIASES: dict[str, str] = {
    "JAC": "JAX",
    "WSH": "WAS",
    "LA": "LAR",
    "OAK": "LV",
    "SD": "LAC",
    "GNB": "GB",
    "KAN": "KC",
    "NWE": "NE",
    "NOR": "NO",
    "SFO": "SF",
    "TAM": "TB",
}


def normalize_affiliation(team: str) -> str:
    """Normalize a team abbreviation. Unknown codes are returned upper-cased, not dropped."""
    team = str(team).strip().upper()
    return NFL_TEAM_ALIASES.get(team, team)


def is_nfl_team(team: str) -> bool:
    return normalize_affiliation(team) in NFL_TEAMS
