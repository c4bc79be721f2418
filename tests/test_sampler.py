"""Tests for content sampling and pending change bookkeeping."""

from vaultwatch.processing.sampler import ContentSampler, word_count


class TestWordCount:
    def test_counts_whitespace_tokens(self):
        assert word_count("hello world") == 2
        assert word_count("  spaced\tout\nwords  ") == 3

    def test_empty(self):
        assert word_count("") == 0
        assert word_count("   ") == 0


class TestSample:
    """Tests for ContentSampler.sample."""

    def test_first_sample_counts_everything_as_added(self):
        sampler = ContentSampler()
        delta = sampler.sample("a.md", "hello world", now=1000)

        assert delta.added == 11
        assert delta.removed == 0
        assert delta.word_count_before == 0
        assert delta.word_count_after == 2
        assert delta.char_count_before == 0
        assert delta.char_count_after == 11

    def test_accumulates_length_deltas(self):
        sampler = ContentSampler()
        sampler.seed("a.md", "hello", now=0)

        sampler.sample("a.md", "hello world", now=10)
        delta = sampler.sample("a.md", "hello", now=20)

        assert delta.added == 6
        assert delta.removed == 6
        assert delta.word_count_before == 1
        assert delta.word_count_after == 1
        assert delta.char_count_before == 5
        assert delta.char_count_after == 5

    def test_same_length_replacement_reads_as_no_change(self):
        sampler = ContentSampler()
        sampler.seed("a.md", "abc", now=0)
        delta = sampler.sample("a.md", "xyz", now=1)
        assert delta.is_empty

    def test_sample_updates_baseline(self):
        sampler = ContentSampler()
        sampler.seed("a.md", "one", now=0)
        sampler.sample("a.md", "one two", now=5)

        change = sampler.get("a.md")
        assert change.last_known_content == "one two"
        assert change.last_sample_time == 5
        assert change.batch_start_time == 0


class TestLifecycle:
    """Tests for seed, rotate, move and discard."""

    def test_seed_has_no_delta(self):
        sampler = ContentSampler()
        change = sampler.seed("a.md", "some words here", now=0)

        assert change.accumulated.is_empty
        assert change.accumulated.word_count_before == 3
        assert change.accumulated.word_count_after == 3

    def test_rotate_starts_from_current_baseline(self):
        sampler = ContentSampler()
        sampler.seed("a.md", "hello", now=0)
        sampler.sample("a.md", "hello world", now=10)
        sampler.mark_force_flush("a.md")

        sampler.rotate("a.md", now=20)

        change = sampler.get("a.md")
        assert change.accumulated.is_empty
        assert change.accumulated.char_count_before == 11
        assert change.batch_start_time == 20
        assert change.force_flush is False
        assert change.last_known_content == "hello world"

    def test_move_rekeys_pending_change(self):
        sampler = ContentSampler()
        sampler.seed("old.md", "text", now=0)

        moved = sampler.move("old.md", "new.md")

        assert moved is not None
        assert "old.md" not in sampler
        assert sampler.baseline("new.md") == "text"

    def test_move_unknown_path(self):
        sampler = ContentSampler()
        assert sampler.move("missing.md", "other.md") is None
        assert len(sampler) == 0

    def test_discard(self):
        sampler = ContentSampler()
        sampler.seed("a.md", "text", now=0)
        assert sampler.discard("a.md").last_known_content == "text"
        assert sampler.discard("a.md") is None

    def test_snapshot_is_a_copy(self):
        sampler = ContentSampler()
        sampler.seed("a.md", "a", now=0)
        snapshot = sampler.snapshot("a.md")
        sampler.sample("a.md", "abc", now=1)
        assert snapshot.added == 0
        assert sampler.get("a.md").accumulated.added == 2
