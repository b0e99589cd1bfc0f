import sqlite3
import tempfile
import unittest
from pathlib import Path

from catalog_dedupe.core.matching import Record
from catalog_dedupe.store import CatalogStore


class TestCatalogStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = CatalogStore(Path(self._tmp.name) / "nested" / "catalog.sqlite3")

    def tearDown(self) -> None:
        self.store.close()
        self._tmp.cleanup()

    def test_upsert_updates_existing_rows(self) -> None:
        self.store.upsert_records([Record(id="1", title="Dune", author="Frank Herbert")])
        self.store.upsert_records([Record(id="1", title="Dune (Deluxe Edition)")])
        books = self.store.list_books()
        self.assertEqual(len(books), 1)
        self.assertEqual(books[0]["title"], "Dune (Deluxe Edition)")
        self.assertIsNone(books[0]["author"])
        self.assertFalse(books[0]["is_duplicate"])

    def test_list_books_orders_by_created_at(self) -> None:
        self.store.upsert_records(
            [
                Record(id="none", title="Emma"),
                Record(id="new", title="Emma", order_key="2021-01-01"),
                Record(id="old", title="Emma", order_key="2019-01-01"),
            ]
        )
        self.assertEqual([b["id"] for b in self.store.list_books()], ["old", "new", "none"])
        self.assertEqual(self.store.count_books(), 3)

    def test_mark_and_reset(self) -> None:
        self.store.upsert_records([Record(id="1", title="Dune"), Record(id="2", title="DUNE")])
        self.assertTrue(self.store.mark_duplicate("2", "1"))
        self.assertFalse(self.store.mark_duplicate("missing", "1"))
        self.assertEqual(self.store.list_duplicates(), [("2", "1")])

        self.assertEqual(self.store.apply_duplicate_marks([]), (1, 0, []))
        self.assertEqual(self.store.list_duplicates(), [])
        self.assertIsNone(self.store.list_books()[1]["duplicate_of"])

    def test_apply_duplicate_marks_replaces_flags(self) -> None:
        self.store.upsert_records(
            [Record(id=str(i), title="Dune") for i in range(1, 5)]
        )
        self.store.mark_duplicate("4", "1")

        reset, marked, missing = self.store.apply_duplicate_marks(
            [("2", "1"), ("3", "1"), ("gone", "1")]
        )
        self.assertEqual((reset, marked, missing), (1, 2, ["gone"]))
        self.assertEqual(self.store.list_duplicates(), [("2", "1"), ("3", "1")])

    def test_apply_duplicate_marks_is_all_or_nothing(self) -> None:
        self.store.upsert_records(
            [Record(id="a", title="Dune"), Record(id="b", title="dune"), Record(id="c", title="DUNE")]
        )
        self.store.mark_duplicate("c", "a")
        # Second connection installs a trigger that rejects marking "c".
        conn = sqlite3.connect(self.store.path)
        try:
            conn.execute(
                """
                CREATE TRIGGER reject_c BEFORE UPDATE OF is_duplicate ON books
                WHEN NEW.id = 'c' AND NEW.is_duplicate = 1
                BEGIN SELECT RAISE(ABORT, 'rejected'); END
                """
            )
            conn.commit()
        finally:
            conn.close()

        with self.assertRaises(sqlite3.DatabaseError):
            self.store.apply_duplicate_marks([("b", "a"), ("c", "a")])
        self.assertEqual(self.store.list_duplicates(), [("c", "a")])

    def test_audit_events_filters(self) -> None:
        first = self.store.append_audit_event("import_complete", {"records": 3})
        self.store.append_audit_event("detect_complete", {"groups": 1})
        self.store.append_audit_event("mark_complete", {"marked": 1})

        events = self.store.list_audit_events()
        self.assertEqual([e["event"] for e in events][0], "mark_complete")
        self.assertEqual(len(events), 3)

        only_detect = self.store.list_audit_events(event="detect_complete")
        self.assertEqual(len(only_detect), 1)
        self.assertEqual(only_detect[0]["payload"], {"groups": 1})

        after_first = self.store.list_audit_events(since_id=first)
        self.assertEqual(len(after_first), 2)
        self.assertEqual(len(self.store.list_audit_events(limit=1)), 1)


class TestCatalogMigration(unittest.TestCase):
    def test_bare_books_table_gains_flag_columns(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "legacy.sqlite3"
            conn = sqlite3.connect(path)
            try:
                conn.execute("CREATE TABLE books (id TEXT PRIMARY KEY, title TEXT)")
                conn.execute("INSERT INTO books(id, title) VALUES ('1', 'Dune'), ('2', 'DUNE')")
                conn.commit()
            finally:
                conn.close()

            store = CatalogStore(path)
            try:
                self.assertTrue(store.mark_duplicate("2", "1"))
                books = store.list_books()
            finally:
                store.close()
            self.assertEqual([b["is_duplicate"] for b in books], [False, True])
            self.assertIsNone(books[0]["author"])


if __name__ == "__main__":
    unittest.main()
