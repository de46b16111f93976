"""Track metadata and per-player playback state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta

MPRIS_PREFIX = "org.mpris.MediaPlayer2."

# Seeking from before this position counts as starting near the intro.
INTRO_START_THRESHOLD_US = 5_000_000
# Landing past this position from near the start counts as skipping the intro.
INTRO_SKIP_THRESHOLD_US = 15_000_000

# Playing this long always satisfies the percentage rule.
LONG_PLAY_SECONDS = 240

_LOCAL_PREFIXES = ("file://", "/")
_REMOTE_PREFIXES = ("http://", "https://", "spotify:", "deezer:", "tidal:")


@dataclass
class Track:
    """Metadata of a track as reported by a media player."""

    title: str | None = None
    artist: str | None = None
    album: str | None = None
    duration_us: int | None = None
    file_path: str | None = None

    genre: str | None = None
    album_artist: str | None = None
    track_number: int | None = None
    disc_number: int | None = None
    release_date: str | None = None
    art_url: str | None = None
    user_rating: float | None = None
    bpm: int | None = None
    composer: str | None = None
    musicbrainz_track_id: str | None = None

    def is_local_source(self, local_players, player_name=None) -> bool:
        """Return True if the track seems to come from a local file."""
        if player_name is not None:
            player_id = player_name.removeprefix(MPRIS_PREFIX)
            if any(p in player_id for p in local_players):
                return True

        path = self.file_path
        if path is not None:
            if path.startswith(_LOCAL_PREFIXES):
                return True
            if path.startswith(_REMOTE_PREFIXES):
                return False

        return False


def _truncating_div(value: int, divisor: int) -> int:
    """Integer division that rounds toward zero."""
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


@dataclass
class TrackState:
    """The current playing state of one player, with its track."""

    track: Track = field(default_factory=Track)
    # Monotonic clock reading when playback started.
    start_time: float | None = None
    # Wall-clock time when playback started.
    start_timestamp: datetime | None = None
    is_playing: bool = False
    is_local: bool = False
    player_name: str | None = None

    seek_count: int = 0
    intro_skipped: bool = False
    seek_forward_ms: int = 0
    seek_backward_ms: int = 0
    last_position_us: int = 0

    app_volume: float | None = None
    system_volume: float | None = None

    def should_log(self, min_seconds: int, min_percent: float) -> bool:
        """Decide whether the current play is long enough to record.

        The play must last at least ``min_seconds`` and, when the duration
        is known, cover ``min_percent`` of the track or four minutes.
        """
        if self.track.title is None or self.start_time is None:
            return False

        played = self.played_duration().total_seconds()
        played_whole = int(played)

        if played_whole < min_seconds:
            return False

        duration_us = self.track.duration_us
        if duration_us is None or duration_us <= 0:
            return True

        duration_seconds = duration_us / 1_000_000.0
        return played >= duration_seconds * min_percent or played_whole >= LONG_PLAY_SECONDS

    def played_duration(self) -> timedelta:
        """Time elapsed since playback started, or zero if it never did."""
        if self.start_time is None:
            return timedelta(0)
        return timedelta(seconds=max(0.0, time.monotonic() - self.start_time))

    def played_ms(self) -> int:
        """Milliseconds elapsed since playback started."""
        return self.played_duration() // timedelta(milliseconds=1)

    def on_seeked(self, new_position_us: int) -> None:
        """Record a seek to ``new_position_us``."""
        self.seek_count += 1

        delta_us = new_position_us - self.last_position_us
        delta_ms = _truncating_div(delta_us, 1000)

        if delta_us > 0:
            self.seek_forward_ms += delta_ms
        else:
            self.seek_backward_ms += abs(delta_ms)

        if (
            self.last_position_us < INTRO_START_THRESHOLD_US
            and new_position_us > INTRO_SKIP_THRESHOLD_US
        ):
            self.intro_skipped = True

        self.last_position_us = new_position_us

    def start_playing(self) -> None:
        """Mark playback as started now."""
        self.is_playing = True
        self.start_time = time.monotonic()
        self.start_timestamp = datetime.now().astimezone()

    def stop_playing(self) -> None:
        """Mark playback as stopped."""
        self.is_playing = False

    def effective_volume(self) -> float | None:
        """Application volume times system volume, using whichever is known."""
        if self.app_volume is not None and self.system_volume is not None:
            return self.app_volume * self.system_volume
        if self.app_volume is not None:
            return self.app_volume
        return self.system_volume