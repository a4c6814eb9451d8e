"""Integration tests for the post store."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from helpers import make_record
from tag_aggregation.config import DatabaseConfig
from tag_aggregation.errors import StoreReadError, StoreWriteError
from tag_aggregation.storage import PostStore
from tag_aggregation.storage.repositories import PostRepository, TagRepository


class TestUpsertTag:
    """Tests for tag upserts."""

    def test_creates_tag(self, store: PostStore):
        """Test creating a new tag."""
        tag_id = store.upsert_tag("outage")

        assert tag_id is not None
        assert store.count_tags() == 1

    def test_upsert_is_idempotent(self, store: PostStore):
        """Test repeated upserts return the same id."""
        first = store.upsert_tag("outage")
        second = store.upsert_tag("outage")
        third = store.upsert_tag("outage")

        assert first == second == third
        assert store.count_tags() == 1

    def test_names_are_case_sensitive(self, store: PostStore):
        """Test that tag names differing in case are distinct."""
        lower = store.upsert_tag("outage")
        upper = store.upsert_tag("Outage")

        assert lower != upper
        assert store.tag_names() == ["Outage", "outage"]


class TestInsertPost:
    """Tests for the dedup/insert contract."""

    def test_insert_returns_post_id(self, store: PostStore):
        """Test inserting a new post."""
        record = make_record("https://ex/1", tags=["outage", "traffic"])

        post_id = store.insert_post(record, record.tag_names)

        assert post_id is not None
        assert store.exists("https://ex/1")
        assert store.count_posts() == 1
        assert store.count_tags() == 2
        assert store.count_links() == 2

    def test_same_uri_twice_is_skipped(self, store: PostStore):
        """Test ingesting the same URI twice keeps one post, tag and link."""
        record = make_record("https://ex/1", tags=["outage"])

        first = store.insert_post(record, ["outage"])
        second = store.insert_post(record, ["outage"])

        assert first is not None
        assert second is None
        assert store.count_posts() == 1
        assert store.count_tags() == 1
        assert store.count_links() == 1

    def test_repeated_ingestion_keeps_one_row(self, store: PostStore):
        """Test that N ingestions of one URI store exactly one post."""
        record = make_record("https://ex/1")

        results = [store.insert_post(record, record.tag_names) for _ in range(5)]

        assert sum(1 for r in results if r is not None) == 1
        assert store.count_posts() == 1

    def test_tags_shared_between_posts(self, store: PostStore):
        """Test that posts reuse existing tag rows."""
        tag_id = store.upsert_tag("outage")

        store.insert_post(make_record("https://ex/1"), ["outage"])
        store.insert_post(make_record("https://ex/2"), ["outage"])

        assert store.count_tags() == 1
        assert store.count_links() == 2
        assert store.upsert_tag("outage") == tag_id

    def test_duplicate_tag_names_link_once(self, store: PostStore):
        """Test a record listing a tag twice gets a single link."""
        record = make_record("https://ex/1", tags=["outage", "outage"])

        store.insert_post(record, record.tag_names)

        assert store.count_links() == 1

    def test_missing_language_defaults_to_en(self, store: PostStore):
        """Test posts without a language are stored as 'en'."""
        record = make_record("https://ex/1", language=None)

        store.insert_post(record, record.tag_names)

        [post] = store.report(["outage"])
        assert post.language == "en"

    def test_exists_for_unknown_uri(self, store: PostStore):
        """Test exists() for a URI that was never stored."""
        assert store.exists("https://ex/unknown") is False

    def test_failed_insert_rolls_back(self, store: PostStore):
        """Test a failure midway leaves no post, tag or link behind."""
        original_upsert = TagRepository.upsert
        calls = []

        def flaky_upsert(self, name):
            calls.append(name)
            if len(calls) == 2:
                raise OperationalError("INSERT INTO tags", {}, Exception("disk I/O error"))
            return original_upsert(self, name)

        record = make_record("https://ex/1", tags=["outage", "traffic"])

        with patch.object(TagRepository, "upsert", flaky_upsert):
            with pytest.raises(StoreWriteError):
                store.insert_post(record, record.tag_names)

        assert store.count_posts() == 0
        assert store.count_tags() == 0
        assert store.count_links() == 0
        assert store.exists("https://ex/1") is False

    def test_aware_created_at_stored_as_utc(self, store: PostStore):
        """Test timezone-aware timestamps are normalized to UTC."""
        created = datetime.now(timezone(timedelta(hours=8))) - timedelta(hours=3)
        record = make_record("https://ex/1", created_at=created)

        store.insert_post(record, record.tag_names)

        [post] = store.report(["outage"])
        assert post.created_at.tzinfo is not None
        assert abs(post.created_at - created) < timedelta(seconds=1)


class TestReport:
    """Tests for the aggregated report query."""

    def test_filters_by_tag(self, store: PostStore):
        """Test only posts with a requested tag are returned."""
        store.insert_post(make_record("https://ex/1"), ["outage"])
        store.insert_post(make_record("https://ex/2"), ["weather"])

        posts = store.report(["outage"])

        assert [p.uri for p in posts] == ["https://ex/1"]

    def test_two_tags_newest_first(self, store: PostStore):
        """Test posts matching either tag are returned newest first."""
        now = datetime.now(timezone.utc)
        store.insert_post(make_record("https://ex/old", created_at=now - timedelta(hours=5)), ["outage"])
        store.insert_post(make_record("https://ex/new", created_at=now - timedelta(hours=1)), ["traffic"])

        posts = store.report(["outage", "traffic"])

        assert [p.uri for p in posts] == ["https://ex/new", "https://ex/old"]
        assert posts[0].created_at > posts[1].created_at

    def test_excludes_posts_outside_window(self, store: PostStore):
        """Test posts older than the trailing window are excluded."""
        now = datetime.now(timezone.utc)
        store.insert_post(make_record("https://ex/stale", created_at=now - timedelta(days=3)), ["outage"])
        store.insert_post(make_record("https://ex/fresh", created_at=now - timedelta(hours=2)), ["outage"])

        posts = store.report(["outage"])

        assert [p.uri for p in posts] == ["https://ex/fresh"]

    def test_custom_window(self, store: PostStore):
        """Test a narrower window."""
        now = datetime.now(timezone.utc)
        store.insert_post(make_record("https://ex/1", created_at=now - timedelta(hours=3)), ["outage"])

        assert store.report(["outage"], window=timedelta(hours=1)) == []
        assert len(store.report(["outage"], window=timedelta(hours=4))) == 1

    def test_tag_list_is_complete_and_sorted(self, store: PostStore):
        """Test the tag list holds every tag, not just the matched one."""
        store.insert_post(make_record("https://ex/1"), ["traffic", "outage", "a"])

        [post] = store.report(["outage"])

        assert post.tag_list == ["a", "outage", "traffic"]

    def test_post_matching_several_tags_listed_once(self, store: PostStore):
        """Test a post matching two requested tags appears once."""
        store.insert_post(make_record("https://ex/1"), ["outage", "traffic"])

        posts = store.report(["outage", "traffic"])

        assert len(posts) == 1
        assert posts[0].tag_list == ["outage", "traffic"]

    def test_empty_tag_list(self, store: PostStore):
        """Test reporting with no tags."""
        store.insert_post(make_record("https://ex/1"), ["outage"])

        assert store.report([]) == []

    def test_unknown_tag(self, store: PostStore):
        """Test reporting on a tag that was never stored."""
        store.insert_post(make_record("https://ex/1"), ["outage"])

        assert store.report(["nothing"]) == []


class TestFileStore:
    """Tests for a file-backed store."""

    def test_data_survives_reopen(self, tmp_path):
        """Test posts persist in a database file."""
        db_config = DatabaseConfig(path=str(tmp_path / "posts.db"))

        first = PostStore.open(db_config)
        first.insert_post(make_record("https://ex/1"), ["outage"])
        first.close()

        second = PostStore.open(db_config)
        try:
            assert second.exists("https://ex/1")
            assert second.insert_post(make_record("https://ex/1"), ["outage"]) is None
            assert second.count_posts() == 1
        finally:
            second.close()


class TestReadFailures:
    """Tests for database errors on the read helpers."""

    @pytest.mark.parametrize(
        "repository, method, call",
        [
            (PostRepository, "count", PostStore.count_posts),
            (TagRepository, "count", PostStore.count_tags),
            (PostRepository, "count_links", PostStore.count_links),
            (TagRepository, "list_names", PostStore.tag_names),
        ],
    )
    def test_counts_raise_store_read_error(self, store: PostStore, repository, method, call):
        """Test SQLAlchemy errors surface as StoreReadError."""
        error = OperationalError("SELECT count(*)", {}, Exception("database is locked"))

        with patch.object(repository, method, side_effect=error):
            with pytest.raises(StoreReadError):
                call(store)
