"""Template compilation and evaluation.

Templates are literal text with ``{token}`` spans::

    "{home}/{appname}/{podname}"
    "{pubdate::%Y-%m-%d} {rss::episode::title}"

A template is compiled against the set of data sources its call site can
provide. Referencing a source that the call site cannot provide is a
compile-time :class:`PatternError`, so evaluation never fails for a missing
source.

Example:
    >>> pattern = compile_pattern("{podname}.log", {SourceType.PODCAST})
    >>> pattern.evaluate(DataSources(podcast=podcast))
    'my-show.log'
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from podsync.feeds.models import NOT_FOUND, Episode, PodcastMetadata
from podsync.utils.datetime import ensure_utc, now_utc, to_unix
from podsync.utils.errors import PatternError
from podsync.utils.paths import APP_NAME


class SourceType(str, Enum):
    """Kinds of data a template token can draw from."""

    EPISODE = "episode"
    PODCAST = "podcast"
    TAGS = "tags"


ALL_SOURCES = frozenset(SourceType)


@dataclass(frozen=True)
class DataSources:
    """Data available to one evaluation call.

    Callers must supply every source the pattern was compiled with.
    """

    podcast: PodcastMetadata | None = None
    episode: Episode | None = None
    tags: Mapping[str, str] | None = None
    now: datetime | None = None  # Overrides the clock for currdate


class UnitKind(str, Enum):
    GUID = "guid"
    URL = "url"
    PODNAME = "podname"
    APPNAME = "appname"
    HOME = "home"


class DataKind(str, Enum):
    """Data token prefixes, matched in declaration order."""

    RSS_EPISODE = "rss::episode::"
    RSS_CHANNEL = "rss::channel::"
    PUBDATE = "pubdate::"
    CURRDATE = "currdate::"
    ID3 = "id3::"


_UNIT_SOURCES: dict[UnitKind, SourceType | None] = {
    UnitKind.GUID: SourceType.EPISODE,
    UnitKind.URL: SourceType.EPISODE,
    UnitKind.PODNAME: SourceType.PODCAST,
    UnitKind.APPNAME: None,
    UnitKind.HOME: None,
}

_DATA_SOURCES: dict[DataKind, SourceType | None] = {
    DataKind.RSS_EPISODE: SourceType.EPISODE,
    DataKind.RSS_CHANNEL: SourceType.PODCAST,
    DataKind.PUBDATE: SourceType.EPISODE,
    DataKind.CURRDATE: None,
    DataKind.ID3: SourceType.TAGS,
}


def _format_datetime(value: datetime, formatting: str) -> str:
    if formatting == "unix":
        return str(to_unix(value))
    return ensure_utc(value).strftime(formatting)


@dataclass(frozen=True)
class TextSegment:
    text: str

    required_source = None

    def evaluate(self, sources: DataSources) -> str:
        return self.text


@dataclass(frozen=True)
class UnitSegment:
    kind: UnitKind

    @property
    def required_source(self) -> SourceType | None:
        return _UNIT_SOURCES[self.kind]

    @property
    def token(self) -> str:
        return self.kind.value

    def evaluate(self, sources: DataSources) -> str:
        if self.kind is UnitKind.GUID:
            return sources.episode.guid
        if self.kind is UnitKind.URL:
            return sources.episode.url
        if self.kind is UnitKind.PODNAME:
            return sources.podcast.name
        if self.kind is UnitKind.APPNAME:
            return APP_NAME
        return str(Path.home())


@dataclass(frozen=True)
class DataSegment:
    kind: DataKind
    data: str

    @property
    def required_source(self) -> SourceType | None:
        return _DATA_SOURCES[self.kind]

    @property
    def token(self) -> str:
        return self.kind.value + self.data

    def evaluate(self, sources: DataSources) -> str:
        if self.kind is DataKind.PUBDATE:
            return _format_datetime(sources.episode.published, self.data)
        if self.kind is DataKind.CURRDATE:
            return _format_datetime(sources.now or now_utc(), self.data)
        if self.kind is DataKind.RSS_EPISODE:
            return sources.episode.attributes.get_text(self.data) or NOT_FOUND
        if self.kind is DataKind.RSS_CHANNEL:
            return sources.podcast.attributes.get_text(self.data) or NOT_FOUND
        return sources.tags.get(self.data, NOT_FOUND)


Segment = TextSegment | UnitSegment | DataSegment


@dataclass(frozen=True)
class Pattern:
    """A compiled template."""

    template: str
    segments: tuple[Segment, ...]
    available: frozenset[SourceType] = field(default=ALL_SOURCES)

    @property
    def required_sources(self) -> frozenset[SourceType]:
        """Sources actually referenced by the template."""
        return frozenset(
            seg.required_source for seg in self.segments if seg.required_source is not None
        )

    def evaluate(self, sources: DataSources) -> str:
        """Render the template.

        Args:
            sources: Data for this call; must contain every source the
                pattern was compiled with

        Returns:
            Concatenation of literal text and evaluated tokens
        """
        return "".join(segment.evaluate(sources) for segment in self.segments)

    def __str__(self) -> str:
        return self.template


def _parse_span(span: str, template: str) -> Segment:
    try:
        return UnitSegment(UnitKind(span))
    except ValueError:
        pass

    for kind in DataKind:
        if span.startswith(kind.value):
            rest = span[len(kind.value) :]
            if not rest:
                raise PatternError(f"missing value after '{kind.value}'", template, span)
            return DataSegment(kind, rest)

    raise PatternError("unrecognized token", template, span)


def compile_pattern(template: str, available_sources: Iterable[SourceType]) -> Pattern:
    """Compile a template string.

    Args:
        template: Text with ``{token}`` spans
        available_sources: Sources the call site can supply at evaluation time

    Returns:
        Compiled pattern

    Raises:
        PatternError: On unbalanced or nested braces, unknown tokens, or a
            token whose source is not in ``available_sources``
    """
    available = frozenset(available_sources)
    segments: list[Segment] = []
    text: list[str] = []
    span: list[str] | None = None

    for char in template:
        if char == "{":
            if span is not None:
                raise PatternError("nested '{'", template, "".join(span) + "{")
            if text:
                segments.append(TextSegment("".join(text)))
                text = []
            span = []
        elif char == "}":
            if span is None:
                raise PatternError("unbalanced '}'", template)
            segments.append(_parse_span("".join(span), template))
            span = None
        elif span is not None:
            span.append(char)
        else:
            text.append(char)

    if span is not None:
        raise PatternError("unclosed '{'", template, "".join(span))
    if text:
        segments.append(TextSegment("".join(text)))

    for segment in segments:
        needed = segment.required_source
        if needed is not None and needed not in available:
            raise PatternError(
                f"token needs {needed.value} data, which is not available here",
                template,
                segment.token,
            )

    return Pattern(template=template, segments=tuple(segments), available=available)
