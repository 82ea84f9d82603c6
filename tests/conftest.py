"""Shared fixtures."""

from pathlib import Path

import pytest

from gamerecon.core.types import ArchiveCandidate, ExternalGame, TeamRef
from gamerecon.database import db_factory_for, init_db

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "test.db"
    init_db(path)
    return path


@pytest.fixture
def db_factory(db_path):
    return db_factory_for(db_path)


@pytest.fixture
def bbgame_xml() -> str:
    return (FIXTURES / "msu_kentucky.xml").read_text()


def make_game(
    game_id: str = "401700001",
    home: str = "Kansas",
    away: str = "Duke",
    game_date: str = "2024-11-12",
    home_id: str = "2305",
    away_id: str = "150",
) -> ExternalGame:
    return ExternalGame(
        id=game_id,
        sport="mens-college-basketball",
        date=game_date,
        home_team=TeamRef(id=home_id, name=home),
        away_team=TeamRef(id=away_id, name=away),
    )


def make_candidate(
    candidate_id: str = "555001",
    home: str = "Kansas",
    away: str = "Duke",
    game_date: str | None = "2024-11-12",
) -> ArchiveCandidate:
    return ArchiveCandidate(id=candidate_id, home_team=home, away_team=away, date=game_date)
