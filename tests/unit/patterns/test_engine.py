"""Tests for template compilation and evaluation."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from podsync.feeds.models import NOT_FOUND, NamespacedAttributes
from podsync.patterns import ALL_SOURCES, DataSources, SourceType, compile_pattern
from podsync.utils.errors import ConfigurationError, PatternError


class TestCompile:
    """Tests for compile_pattern."""

    def test_plain_text(self) -> None:
        """Test template without tokens evaluates to itself."""
        pattern = compile_pattern("just text", set())
        assert pattern.evaluate(DataSources()) == "just text"
        assert pattern.required_sources == frozenset()

    def test_empty_template(self) -> None:
        """Test empty template evaluates to empty string."""
        assert compile_pattern("", set()).evaluate(DataSources()) == ""

    def test_unit_tokens(self, podcast, make_episode) -> None:
        """Test guid, url and podname tokens."""
        episode = make_episode(3)
        pattern = compile_pattern("{podname}/{guid} {url}", ALL_SOURCES)

        result = pattern.evaluate(DataSources(podcast=podcast, episode=episode))

        assert result == f"my-show/guid-3 {episode.url}"

    def test_appname_and_home(self) -> None:
        """Test tokens that need no data source."""
        pattern = compile_pattern("{home}/{appname}", set())
        assert pattern.evaluate(DataSources()) == f"{Path.home()}/podsync"

    def test_unbalanced_close(self) -> None:
        """Test stray closing brace is rejected."""
        with pytest.raises(PatternError, match="unbalanced"):
            compile_pattern("abc}", ALL_SOURCES)

    def test_unclosed_open(self) -> None:
        """Test unterminated span is rejected."""
        with pytest.raises(PatternError, match="unclosed") as exc_info:
            compile_pattern("abc{guid", ALL_SOURCES)
        assert exc_info.value.span == "guid"

    def test_nested_open(self) -> None:
        """Test nested braces are rejected."""
        with pytest.raises(PatternError, match="nested"):
            compile_pattern("{a{guid}}", ALL_SOURCES)

    def test_unknown_token(self) -> None:
        """Test unknown token names the span and template."""
        with pytest.raises(PatternError) as exc_info:
            compile_pattern("{podname}/{nope}", ALL_SOURCES)

        assert exc_info.value.span == "nope"
        assert exc_info.value.template == "{podname}/{nope}"
        assert "unrecognized token" in str(exc_info.value)

    def test_prefix_without_value(self) -> None:
        """Test a data prefix with nothing after it."""
        with pytest.raises(PatternError, match="missing value"):
            compile_pattern("{pubdate::}", ALL_SOURCES)

    def test_unavailable_source(self) -> None:
        """Test token requiring a source the call site lacks."""
        with pytest.raises(PatternError) as exc_info:
            compile_pattern("{home}/{guid}", {SourceType.PODCAST})

        assert exc_info.value.span == "guid"
        assert "episode" in str(exc_info.value)

    def test_id3_needs_tags(self) -> None:
        """Test id3 tokens only compile where tags are available."""
        with pytest.raises(PatternError):
            compile_pattern("{id3::TIT2}", {SourceType.PODCAST, SourceType.EPISODE})

        pattern = compile_pattern("{id3::TIT2}", ALL_SOURCES)
        assert pattern.required_sources == {SourceType.TAGS}

    def test_pattern_error_is_configuration_error(self) -> None:
        """Test PatternError is fatal configuration error."""
        with pytest.raises(ConfigurationError):
            compile_pattern("{", ALL_SOURCES)


class TestEvaluate:
    """Tests for Pattern.evaluate."""

    def test_pubdate_strftime(self, make_episode) -> None:
        """Test pubdate with strftime format."""
        episode = make_episode(0, published=datetime(2024, 3, 5, 10, 30, tzinfo=timezone.utc))
        pattern = compile_pattern("{pubdate::%Y-%m-%d}", ALL_SOURCES)

        assert pattern.evaluate(DataSources(episode=episode)) == "2024-03-05"

    def test_pubdate_unix(self, make_episode) -> None:
        """Test pubdate::unix renders epoch seconds."""
        episode = make_episode(0, published=datetime(2024, 1, 1, tzinfo=timezone.utc))
        pattern = compile_pattern("{pubdate::unix}", ALL_SOURCES)

        assert pattern.evaluate(DataSources(episode=episode)) == "1704067200"

    def test_currdate_uses_supplied_now(self, now: datetime) -> None:
        """Test currdate renders the evaluation time."""
        pattern = compile_pattern("{currdate::%Y}", set())
        assert pattern.evaluate(DataSources(now=now)) == "2024"

    def test_rss_episode_lookup(self, make_episode) -> None:
        """Test namespaced episode attribute lookup."""
        episode = make_episode(
            1,
            attributes=NamespacedAttributes(
                {("", "title"): ["Episode 1"], ("itunes", "episode"): ["42"]}
            ),
        )
        pattern = compile_pattern("{rss::episode::itunes:episode} {rss::episode::title}", ALL_SOURCES)

        assert pattern.evaluate(DataSources(episode=episode)) == "42 Episode 1"

    def test_rss_channel_lookup(self, podcast) -> None:
        """Test channel attribute lookup."""
        pattern = compile_pattern("{rss::channel::itunes:author}", {SourceType.PODCAST})
        assert pattern.evaluate(DataSources(podcast=podcast)) == "Jane Host"

    def test_missing_rss_key_yields_sentinel(self, podcast, make_episode) -> None:
        """Test absent attribute renders the not-found sentinel."""
        pattern = compile_pattern("{rss::episode::itunes:season}", ALL_SOURCES)
        result = pattern.evaluate(DataSources(podcast=podcast, episode=make_episode(0)))

        assert result == NOT_FOUND

    def test_id3_lookup(self) -> None:
        """Test id3 token reads from the tag set."""
        pattern = compile_pattern("{id3::TIT2}-{id3::TXXX}", ALL_SOURCES)
        result = pattern.evaluate(DataSources(tags={"TIT2": "Hello"}))

        assert result == f"Hello-{NOT_FOUND}"

    def test_str_returns_template(self) -> None:
        """Test str() of a pattern is its template."""
        assert str(compile_pattern("{home}/x", set())) == "{home}/x"
