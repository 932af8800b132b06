"""Download modes and episode eligibility.

A feed is synced in exactly one mode, fixed by configuration:

- ``StandardMode`` keeps recent episodes: an age limit, an absolute date
  floor and a newest-N cap. Pending episodes download newest first.
- ``BacklogMode`` replays a back catalogue: one more episode becomes
  eligible every ``interval`` since ``start``. Pending episodes download
  oldest first, in original release order.

Evaluation is pure. Invalid combinations are rejected when the config is
merged, never here.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from podsync.feeds.models import Episode
from podsync.utils.datetime import ensure_utc

IsDownloaded = Callable[[Episode], bool]


class StandardMode(BaseModel):
    """Eligibility by age, date floor and count."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["standard"] = "standard"
    max_age: timedelta | None = None
    max_episodes: int | None = Field(default=None, ge=0)
    earliest_date: datetime | None = None

    def is_eligible(self, episode: Episode, total: int, now: datetime) -> bool:
        """Check the mode's own constraints, ignoring the ledger."""
        published = ensure_utc(episode.published)
        if self.max_age is not None and ensure_utc(now) - published > self.max_age:
            return False
        if self.earliest_date is not None and published < ensure_utc(self.earliest_date):
            return False
        if self.max_episodes is not None and episode.index < total - self.max_episodes:
            return False
        return True

    def pending(
        self, episodes: Sequence[Episode], is_downloaded: IsDownloaded, now: datetime
    ) -> list[Episode]:
        total = len(episodes)
        selected = [
            ep
            for ep in episodes
            if not is_downloaded(ep) and self.is_eligible(ep, total, now)
        ]
        # Recent episodes first
        return sorted(selected, key=lambda ep: ep.index, reverse=True)


class BacklogMode(BaseModel):
    """Eligibility by simulated release pacing."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["backlog"] = "backlog"
    start: datetime
    interval: timedelta
    max_episodes: int | None = Field(default=None, ge=0)

    def elapsed_intervals(self, now: datetime) -> int:
        """Whole intervals between ``start`` and ``now`` (negative before start)."""
        return (ensure_utc(now) - ensure_utc(self.start)) // self.interval

    def is_eligible(self, episode: Episode, now: datetime) -> bool:
        return episode.index <= self.elapsed_intervals(now)

    def pending(
        self, episodes: Sequence[Episode], is_downloaded: IsDownloaded, now: datetime
    ) -> list[Episode]:
        selected = sorted(
            (ep for ep in episodes if self.is_eligible(ep, now) and not is_downloaded(ep)),
            key=lambda ep: ep.index,
        )
        if self.max_episodes is not None:
            selected = selected[: self.max_episodes]
        return selected


DownloadMode = Annotated[StandardMode | BacklogMode, Field(discriminator="kind")]


def pending_episodes(
    mode: StandardMode | BacklogMode,
    episodes: Sequence[Episode],
    is_downloaded: IsDownloaded,
    now: datetime,
) -> list[Episode]:
    """Episodes to download this run, in download order.

    Args:
        mode: The feed's download mode
        episodes: All feed episodes with contiguous indices
        is_downloaded: Ledger membership test
        now: Evaluation time

    Returns:
        Eligible episodes, newest first in standard mode and oldest first in
        backlog mode
    """
    return mode.pending(episodes, is_downloaded, now)
