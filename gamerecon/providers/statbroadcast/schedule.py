"""Team schedule page parsing.

A StatBroadcast team schedule is an HTML table. Each game row links to
the game through one of several URL shapes and carries a date cell and
an opponent cell ("vs Kansas" for home games, "@ Kansas" for road games).
"""

import logging
import re
from dataclasses import dataclass
from datetime import date

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

# ?id=123456 and statbroadcast.com?id=123456
_QUERY_ID = re.compile(r"[?&]id=(\d+)")
# http://statb.us/b/123456 and http://statb.us/v/team/123456
_SHORT_LINK_ID = re.compile(r"statb\.us/[bv]/(?:[^/]+/)?(\d+)")

_DATE_DASH = re.compile(r"(?<!\d)(\d{1,2})-(\d{1,2})-(\d{2})(?!\d)")
_DATE_SLASH = re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})(?!\d)")
_OPPONENT = re.compile(r"^(vs\.?|@)\s+(.+)$", re.IGNORECASE)


@dataclass
class ScheduleEntry:
    """One game row on a team schedule page."""

    game_id: str
    date: str | None
    opponent: str | None
    is_home: bool | None
    href: str


def extract_game_id(href: str) -> str | None:
    """Archive game id from a schedule link, or None."""
    match = _QUERY_ID.search(href) or _SHORT_LINK_ID.search(href)
    return match.group(1) if match else None


def parse_schedule_date(text: str) -> str | None:
    """MM-DD-YY or MM/DD/YYYY (two-digit years are 20xx) to YYYY-MM-DD."""
    match = _DATE_DASH.search(text)
    if match:
        month, day, year = match.groups()
        year = "20" + year
    else:
        match = _DATE_SLASH.search(text)
        if not match:
            return None
        month, day, year = match.groups()
        if len(year) == 2:
            year = "20" + year
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def _row_info(row: Tag | None) -> tuple[str | None, str | None, bool | None]:
    if row is None:
        return None, None, None

    game_date = opponent = None
    is_home = None
    for cell in row.find_all("td"):
        text = cell.get_text(" ", strip=True)
        if game_date is None:
            game_date = parse_schedule_date(text)
        if opponent is None:
            match = _OPPONENT.match(text)
            if match:
                is_home = not match.group(1).startswith("@")
                opponent = match.group(2).strip()
    return game_date, opponent, is_home


def parse_schedule_html(html: str) -> list[ScheduleEntry]:
    """Extract every distinct game linked from a schedule page.

    Rows without a date or opponent are kept with those fields set to
    None; callers decide whether they are usable.
    """
    soup = BeautifulSoup(html, "html.parser")
    entries: list[ScheduleEntry] = []
    seen: set[str] = set()

    for link in soup.find_all("a", href=True):
        href = link["href"]
        game_id = extract_game_id(href)
        if not game_id or game_id in seen:
            continue
        seen.add(game_id)

        game_date, opponent, is_home = _row_info(link.find_parent("tr"))
        entries.append(
            ScheduleEntry(
                game_id=game_id,
                date=game_date,
                opponent=opponent,
                is_home=is_home,
                href=href,
            )
        )

    logger.debug("[SCHEDULE] Parsed %d games", len(entries))
    return entries
