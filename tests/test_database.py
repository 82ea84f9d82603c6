"""Tests for the SQLite stores."""

import sqlite3

import pytest

from gamerecon.core.types import GameIdMapping, HistoricalGame, RunStatus, SaveOutcome
from gamerecon.database import get_db, init_db, reset_db
from gamerecon.database.archive_teams import ArchiveTeam, find_team_gid, get_all_teams, upsert_team
from gamerecon.database.historical_games import (
    count_games,
    get_game,
    get_games_by_date_range,
    save_game,
)
from gamerecon.database.mappings import (
    count_mappings,
    get_low_confidence_mappings,
    get_mapping,
    get_mapping_by_archive_id,
    get_mappings_by_date,
    save_mapping,
    update_data_quality,
    update_last_fetched,
)
from gamerecon.database.reconciliation_log import (
    complete_reconciliation,
    fail_reconciliation,
    get_reconciliation,
    get_reconciliation_stats,
    get_reconciliations_by_status,
    get_recent_reconciliations,
    start_reconciliation,
)


def make_mapping(primary_id="401700001", archive_id="555001", confidence=0.95, **kwargs):
    fields = {
        "home_team": "Kansas",
        "away_team": "Duke",
        "game_date": "2024-11-12",
        "match_method": "discovery",
    }
    fields.update(kwargs)
    return GameIdMapping(
        primary_id=primary_id, archive_id=archive_id, confidence=confidence, **fields
    )


@pytest.fixture
def conn(db_path):
    with get_db(db_path) as connection:
        yield connection


class TestConnection:
    def test_init_db_idempotent(self, db_path):
        init_db(db_path)
        init_db(db_path)
        with get_db(db_path) as conn:
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        assert {
            "game_id_mappings",
            "historical_games",
            "reconciliation_log",
            "archive_teams",
            "request_quota",
        } <= tables

    def test_rollback_on_error(self, db_path):
        with pytest.raises(RuntimeError):
            with get_db(db_path) as conn:
                save_mapping(conn, make_mapping())
                raise RuntimeError("boom")
        with get_db(db_path) as conn:
            assert get_mapping(conn, "401700001") is None

    def test_reset_db(self, db_path):
        with get_db(db_path) as conn:
            save_mapping(conn, make_mapping())
        reset_db(db_path)
        with get_db(db_path) as conn:
            assert count_mappings(conn)["total"] == 0


class TestMappings:
    def test_save_and_get(self, conn):
        stored = save_mapping(conn, make_mapping())
        assert stored.archive_id == "555001"
        assert stored.discovered_at is not None
        assert stored.last_fetched is None
        assert get_mapping(conn, "401700001") == stored

    def test_save_again_updates_in_place(self, conn):
        first = save_mapping(conn, make_mapping())
        second = save_mapping(conn, make_mapping(archive_id="555009", confidence=0.8))
        assert second.archive_id == "555009"
        assert second.discovered_at == first.discovered_at
        assert second.last_fetched is not None
        assert count_mappings(conn)["total"] == 1

    def test_invalid_method(self, conn):
        with pytest.raises(ValueError):
            save_mapping(conn, make_mapping(match_method="guess"))

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_invalid_confidence(self, conn, confidence):
        with pytest.raises(ValueError):
            save_mapping(conn, make_mapping(confidence=confidence))

    def test_archive_id_not_unique(self, conn):
        save_mapping(conn, make_mapping("a", "555001"))
        save_mapping(conn, make_mapping("b", "555001"))
        assert get_mapping_by_archive_id(conn, "555001").primary_id == "a"
        assert get_mapping_by_archive_id(conn, "000000") is None

    def test_by_date(self, conn):
        save_mapping(conn, make_mapping("b"))
        save_mapping(conn, make_mapping("a"))
        save_mapping(conn, make_mapping("c", game_date="2024-11-13"))
        assert [m.primary_id for m in get_mappings_by_date(conn, "2024-11-12")] == ["a", "b"]

    def test_low_confidence_excludes_manual(self, conn):
        save_mapping(conn, make_mapping("weak", confidence=0.72))
        save_mapping(conn, make_mapping("weaker", confidence=0.71))
        save_mapping(conn, make_mapping("strong", confidence=0.95))
        save_mapping(conn, make_mapping("manual", confidence=0.5, match_method="manual"))
        low = get_low_confidence_mappings(conn)
        assert [m.primary_id for m in low] == ["weaker", "weak"]
        assert len(get_low_confidence_mappings(conn, limit=1)) == 1

    def test_update_data_quality(self, conn):
        save_mapping(conn, make_mapping())
        assert update_data_quality(conn, "401700001", "partial") is True
        assert get_mapping(conn, "401700001").data_quality == "partial"
        assert update_data_quality(conn, "missing", "full") is False
        with pytest.raises(ValueError):
            update_data_quality(conn, "401700001", "great")

    def test_update_last_fetched(self, conn):
        save_mapping(conn, make_mapping())
        assert update_last_fetched(conn, "401700001") is True
        assert get_mapping(conn, "401700001").last_fetched is not None
        assert update_last_fetched(conn, "missing") is False

    def test_count_by_method(self, conn):
        save_mapping(conn, make_mapping("a"))
        save_mapping(conn, make_mapping("b", match_method="manual", confidence=1.0))
        assert count_mappings(conn) == {"discovery": 1, "manual": 1, "total": 2}


class TestHistoricalGames:
    def make_game(self, game_id="401700001", game_date="2024-11-12"):
        return HistoricalGame(
            id=game_id,
            archive_game_id="555001",
            game_date=game_date,
            home_team_id="2305",
            away_team_id="150",
            home_score=77,
            away_score=69,
            home_fg_pct=47.5,
            has_play_by_play=True,
            backfilled=True,
        )

    def test_save_and_get(self, conn):
        assert save_game(conn, self.make_game()) == SaveOutcome.SAVED
        game = get_game(conn, "401700001")
        assert game.home_score == 77
        assert game.home_fg_pct == 47.5
        assert game.has_play_by_play is True
        assert game.is_neutral_site is False
        assert count_games(conn) == 1

    def test_duplicate(self, conn):
        save_game(conn, self.make_game())
        assert save_game(conn, self.make_game()) == SaveOutcome.DUPLICATE
        assert count_games(conn) == 1

    def test_minimal_game_without_team_ids(self, conn):
        game = HistoricalGame(id="401700009", archive_game_id=None, game_date="2024-11-12")
        assert save_game(conn, game) == SaveOutcome.SAVED
        stored = get_game(conn, "401700009")
        assert stored.home_team_id is None
        assert stored.away_team_id is None
        assert stored.home_score == 0

    def test_missing_required_column_raises(self, conn):
        game = self.make_game()
        game.game_date = None
        with pytest.raises(sqlite3.IntegrityError):
            save_game(conn, game)

    def test_date_range_inclusive(self, conn):
        for game_id, game_date in (
            ("a", "2024-11-11"),
            ("b", "2024-11-12"),
            ("c", "2024-11-14"),
            ("d", "2024-11-15"),
        ):
            save_game(conn, self.make_game(game_id, game_date))
        games = get_games_by_date_range(conn, "2024-11-12", "2024-11-14")
        assert [g.id for g in games] == ["b", "c"]


class TestReconciliationLog:
    def test_lifecycle(self, conn):
        run = start_reconciliation(conn, "2024-11-10", "2024-11-12", "scheduler")
        stored = get_reconciliation(conn, run.id)
        assert stored.status == RunStatus.RUNNING
        assert stored.triggered_by == "scheduler"

        assert complete_reconciliation(conn, run.id, 10, 7, 3) is True
        stored = get_reconciliation(conn, run.id)
        assert stored.status == RunStatus.COMPLETED
        assert (stored.games_found, stored.games_processed, stored.games_failed) == (10, 7, 3)
        assert stored.completed_at is not None
        assert stored.data_sources == "ESPN,StatBroadcast"

    def test_terminal_state_is_final(self, conn):
        run = start_reconciliation(conn, "2024-11-10", "2024-11-12")
        assert fail_reconciliation(conn, run.id, "feed down") is True
        assert complete_reconciliation(conn, run.id, 1, 1, 0) is False
        assert fail_reconciliation(conn, run.id, "again") is False
        stored = get_reconciliation(conn, run.id)
        assert stored.status == RunStatus.FAILED
        assert stored.error_message == "feed down"

    def test_unknown_run(self, conn):
        assert get_reconciliation(conn, "nope") is None
        assert complete_reconciliation(conn, "nope", 0, 0, 0) is False

    def test_queries_and_stats(self, conn):
        first = start_reconciliation(conn, "2024-11-01", "2024-11-02")
        second = start_reconciliation(conn, "2024-11-03", "2024-11-04")
        start_reconciliation(conn, "2024-11-05", "2024-11-06")
        complete_reconciliation(conn, first.id, 4, 3, 1)
        fail_reconciliation(conn, second.id, "boom")

        assert len(get_recent_reconciliations(conn, limit=2)) == 2
        assert [r.id for r in get_reconciliations_by_status(conn, "failed")] == [second.id]
        assert len(get_reconciliations_by_status(conn, RunStatus.RUNNING)) == 1

        stats = get_reconciliation_stats(conn)
        assert stats["total_runs"] == 3
        assert stats["completed_runs"] == 1
        assert stats["failed_runs"] == 1
        assert stats["running_runs"] == 1
        assert stats["total_games_found"] == 4
        assert stats["success_rate"] == 75.0

    def test_stats_empty(self, conn):
        stats = get_reconciliation_stats(conn)
        assert stats["total_runs"] == 0
        assert stats["success_rate"] == 0.0


class TestArchiveTeams:
    def test_upsert_keeps_primary_id(self, conn):
        upsert_team(conn, ArchiveTeam(gid="kansas", team_name="Kansas", primary_team_id="2305"))
        upsert_team(conn, ArchiveTeam(gid="kansas", team_name="Kansas Jayhawks"))
        teams = get_all_teams(conn)
        assert len(teams) == 1
        assert teams[0].team_name == "Kansas Jayhawks"
        assert teams[0].primary_team_id == "2305"

    def test_find_by_primary_id_first(self, conn):
        upsert_team(conn, ArchiveTeam(gid="ku", team_name="Kansas", primary_team_id="2305"))
        upsert_team(conn, ArchiveTeam(gid="kstate", team_name="Kansas St."))
        assert find_team_gid(conn, "Kansas State", "2305") == "ku"

    def test_find_by_name(self, conn):
        upsert_team(conn, ArchiveTeam(gid="ku", team_name="Kansas"))
        upsert_team(conn, ArchiveTeam(gid="kstate", team_name="Kansas St."))
        assert find_team_gid(conn, "Kansas State") == "kstate"
        assert find_team_gid(conn, "Gonzaga") is None

    def test_sport_scoped(self, conn):
        upsert_team(conn, ArchiveTeam(gid="ku-w", team_name="Kansas", sport="womens-college-basketball"))
        assert find_team_gid(conn, "Kansas") is None
