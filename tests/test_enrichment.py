"""
Tests for chunked KEGG enrichment.

These tests verify:
1. Chunk partitioning
2. Merge back by id, including partial responses
3. Bounded retry with backoff and RemoteUnavailable on exhaustion
4. Cancellation at chunk and retry boundaries
5. Progress reporting
"""

import logging
import threading
from collections import Counter

import pandas as pd
import pytest

from pathway_annotation.enrichment import (
    ENRICHMENT_FIELDS,
    KeggEnrichment,
    count_chunks,
    iter_chunks,
)
from pathway_annotation.errors import EnrichmentCancelled, RemoteTransientError, RemoteUnavailable
from pathway_annotation.extract import RemoteEntry
from pathway_annotation.query.query_kegg import QueryKeggABC


# =============================================================================
# TEST FIXTURES
# =============================================================================

class EchoKegg(QueryKeggABC):
    """Returns an entry with a fixed NAME for every requested id."""

    def __init__(self, known=None):
        self.known = known
        self.calls = []

    def query(self, ids):
        self.calls.append(list(ids))
        return [
            RemoteEntry(entry_id=i, name=(f"name {i}",), description=(f"desc {i}",),
                        class_field=("Metabolism",), pathway_map=(f"map {i}",))
            for i in ids if self.known is None or i in self.known
        ]


class FlakyKegg(EchoKegg):
    """Fails ``failures`` times for every distinct id set before answering."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = Counter()

    def query(self, ids):
        key = tuple(ids)
        self.attempts[key] += 1
        if self.attempts[key] <= self.failures:
            self.calls.append(list(ids))
            raise RemoteTransientError("connection reset")
        return super().query(ids)


class RecordingProgress:

    def __init__(self, on_report=None):
        self.reports = []
        self.on_report = on_report

    def report(self, completed, total, elapsed):
        self.reports.append((completed, total, elapsed))
        if self.on_report:
            self.on_report(completed)


def make_daa(n, index=None) -> pd.DataFrame:
    return pd.DataFrame({
        "feature": [f"K{i:05d}" for i in range(1, n + 1)],
        "p_adjust": [0.001] * n,
    }, index=index)


def make_engine(query, **kwargs) -> KeggEnrichment:
    kwargs.setdefault("sleep", lambda seconds: None)
    return KeggEnrichment(query, **kwargs)


# =============================================================================
# CHUNKING
# =============================================================================

class TestChunking:

    @pytest.mark.parametrize("n,k,expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 10, 3)])
    def test_count_chunks(self, n, k, expected):
        assert count_chunks(n, k) == expected

    def test_chunks_cover_every_row_once(self):
        features = [f"K{i:05d}" for i in range(25)]
        chunks = list(iter_chunks(features, 10))
        assert [len(c.ids) for c in chunks] == [10, 10, 5]
        assert [(c.start, c.end) for c in chunks] == [(0, 10), (10, 20), (20, 25)]
        flattened = [f for c in chunks for f in c.ids]
        assert flattened == features

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            list(iter_chunks(["K00001"], 0))


# =============================================================================
# MERGING
# =============================================================================

class TestMerge:

    def test_end_to_end_three_chunks(self):
        kegg = EchoKegg()
        out = make_engine(kegg, kegg_limit=10).enrich(make_daa(25))
        assert [len(c) for c in kegg.calls] == [10, 10, 5]
        assert out["pathway_name"].notna().all()
        assert out.loc[24, "pathway_name"] == "name K00025"

    def test_partial_response_leaves_unmatched_rows_absent(self):
        kegg = EchoKegg(known={"K00001", "K00003"})
        out = make_engine(kegg, kegg_limit=3).enrich(make_daa(3))
        assert out.loc[0, "pathway_name"] == "name K00001"
        assert out.loc[2, "pathway_map"] == "map K00003"
        for col in ENRICHMENT_FIELDS:
            assert pd.isna(out.loc[1, col])

    def test_all_fields_populated(self):
        out = make_engine(EchoKegg()).enrich(make_daa(1))
        row = out.iloc[0]
        assert row["pathway_name"] == "name K00001"
        assert row["pathway_description"] == "desc K00001"
        assert row["pathway_class"] == "Metabolism"
        assert row["pathway_map"] == "map K00001"

    def test_missing_remote_fields_are_absent(self):
        class NameOnly(QueryKeggABC):
            def query(self, ids):
                return [RemoteEntry(entry_id=i, name=("only name",)) for i in ids]

        out = make_engine(NameOnly()).enrich(make_daa(2))
        assert list(out["pathway_name"]) == ["only name", "only name"]
        assert out["pathway_class"].isna().all()

    def test_foreign_entries_ignored(self):
        class Extra(QueryKeggABC):
            def query(self, ids):
                return [RemoteEntry(entry_id="K99999", name=("stray",)),
                        RemoteEntry(entry_id=ids[-1], name=("last",))]

        out = make_engine(Extra(), kegg_limit=2).enrich(make_daa(2))
        assert pd.isna(out.loc[0, "pathway_name"])
        assert out.loc[1, "pathway_name"] == "last"
        assert "stray" not in set(out["pathway_name"].dropna())

    def test_results_written_to_absolute_rows(self):
        kegg = EchoKegg(known={"K00012"})
        out = make_engine(kegg, kegg_limit=5).enrich(make_daa(15))
        filled = out[out["pathway_name"].notna()]
        assert list(filled["feature"]) == ["K00012"]

    def test_duplicate_features_all_filled(self):
        df = pd.DataFrame({"feature": ["K00001", "K00002", "K00001"], "p_adjust": [0.01] * 3})
        out = make_engine(EchoKegg(known={"K00001"})).enrich(df)
        assert list(out["pathway_name"].isna()) == [False, True, False]

    def test_index_and_order_preserved(self):
        df = make_daa(3, index=[40, 7, 19])
        out = make_engine(EchoKegg()).enrich(df)
        assert list(out.index) == [40, 7, 19]
        assert list(out["feature"]) == list(df["feature"])
        assert "pathway_name" not in df.columns

    def test_empty_table(self):
        kegg = EchoKegg()
        out = make_engine(kegg).enrich(make_daa(0))
        assert kegg.calls == []
        assert set(ENRICHMENT_FIELDS) <= set(out.columns)

    def test_limit_above_remote_ceiling_rejected(self):
        with pytest.raises(ValueError):
            KeggEnrichment(EchoKegg(), kegg_limit=11)

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, limit):
        with pytest.raises(ValueError):
            KeggEnrichment(EchoKegg(), kegg_limit=limit)


# =============================================================================
# RETRY
# =============================================================================

class TestRetry:

    def test_two_failures_then_success(self):
        kegg = FlakyKegg(failures=2)
        out = make_engine(kegg, kegg_limit=10).enrich(make_daa(5))
        assert kegg.attempts[tuple(f"K{i:05d}" for i in range(1, 6))] == 3
        assert len(kegg.calls) == 3
        assert out["pathway_name"].notna().all()

    def test_retry_logged_with_attempt_number(self, caplog):
        kegg = FlakyKegg(failures=1)
        with caplog.at_level(logging.WARNING, logger="pathway_annotation.enrichment"):
            make_engine(kegg).enrich(make_daa(1))
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "attempt 1" in warnings[0].getMessage()
        assert "connection reset" in warnings[0].getMessage()

    def test_exhausted_attempts_raise_remote_unavailable(self):
        kegg = FlakyKegg(failures=100)
        with pytest.raises(RemoteUnavailable) as exc:
            make_engine(kegg, max_attempts=3).enrich(make_daa(12))
        assert exc.value.attempts == 3
        assert (exc.value.start, exc.value.end) == (0, 10)
        assert isinstance(exc.value.__cause__, RemoteTransientError)
        assert len(kegg.calls) == 3

    def test_any_exception_is_retried(self):
        class Broken(EchoKegg):
            def __init__(self):
                super().__init__()
                self.n = 0

            def query(self, ids):
                self.n += 1
                if self.n == 1:
                    raise KeyError("bad payload")
                return super().query(ids)

        out = make_engine(Broken()).enrich(make_daa(2))
        assert out["pathway_name"].notna().all()

    def test_unbounded_attempts(self):
        kegg = FlakyKegg(failures=8)
        out = make_engine(kegg, max_attempts=None).enrich(make_daa(1))
        assert out["pathway_name"].notna().all()

    def test_backoff_grows_within_bounds(self):
        sleeps = []
        kegg = FlakyKegg(failures=3)
        make_engine(kegg, backoff_min=1, backoff_max=3, sleep=sleeps.append).enrich(make_daa(1))
        assert len(sleeps) == 3
        assert sleeps == sorted(sleeps)
        assert all(1 <= s <= 3 for s in sleeps)


# =============================================================================
# CANCELLATION AND PROGRESS
# =============================================================================

class TestCancellationAndProgress:

    def test_progress_reported_per_chunk(self):
        progress = RecordingProgress()
        make_engine(EchoKegg(), kegg_limit=10, progress=progress).enrich(make_daa(25))
        assert [(c, t) for c, t, _ in progress.reports] == [(1, 3), (2, 3), (3, 3)]
        elapsed = [e.total_seconds() for _, _, e in progress.reports]
        assert elapsed == sorted(elapsed)

    def test_cancel_between_chunks(self):
        event = threading.Event()
        progress = RecordingProgress(on_report=lambda completed: event.set())
        kegg = EchoKegg()
        engine = make_engine(kegg, kegg_limit=10, progress=progress, cancel_event=event)
        with pytest.raises(EnrichmentCancelled) as exc:
            engine.enrich(make_daa(25))
        assert exc.value.completed_chunks == 1
        assert len(kegg.calls) == 1

    def test_cancel_during_retry(self):
        event = threading.Event()

        class FailAndCancel(EchoKegg):
            def query(self, ids):
                self.calls.append(list(ids))
                event.set()
                raise RemoteTransientError("timeout")

        kegg = FailAndCancel()
        with pytest.raises(EnrichmentCancelled):
            make_engine(kegg, max_attempts=None, cancel_event=event).enrich(make_daa(3))
        assert len(kegg.calls) == 1
