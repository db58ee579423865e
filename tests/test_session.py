from nestsync.db.models import Node
from nestsync.db.session import DatabaseSessionManager
from tests.conftest import make_session


def test_migrate_is_idempotent_and_enables_foreign_keys(tmp_path):
    db = make_session(str(tmp_path / "nested" / "tree.db"))
    try:
        db.migrate()

        assert db.fetchone("PRAGMA foreign_keys")[0] == 1
        assert db.fetchone("PRAGMA journal_mode")[0] == "wal"
        assert Node.select().count() == 0
    finally:
        db.close()


def test_execute_and_fetchone_return_rows_by_name():
    db = make_session()
    try:
        db.execute(
            "INSERT INTO nodes (name, lft, rgt, depth, created_at, updated_at) "
            "VALUES (?, 1, 2, 0, '2024-01-01', '2024-01-01')",
            ["raw"],
        )

        row = db.fetchone("SELECT name, lft FROM nodes WHERE name = ?", ["raw"])

        assert row["name"] == "raw"
        assert row["lft"] == 1
        assert db.fetchone("SELECT id FROM nodes WHERE name = ?", ["missing"]) is None
    finally:
        db.close()


def test_close_is_safe_twice():
    db = make_session()
    db.close()
    db.close()


def test_mask_path_hides_directories():
    assert DatabaseSessionManager._mask_path("/srv/data/tree.db") == ".../data/tree.db"
    assert DatabaseSessionManager._mask_path("tree.db") == "tree.db"
