"""Extraction of typed values from MPRIS metadata into a Track."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from listenlog.track import Track

MPRIS_PREFIX = "org.mpris.MediaPlayer2."
MPRIS_PATH = "/org/mpris/MediaPlayer2"
MPRIS_PLAYER_IFACE = "org.mpris.MediaPlayer2.Player"

_I32_MIN, _I32_MAX = -(2**31), 2**31 - 1
_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def extract_string(value: Any) -> str | None:
    """Return the value if it is a string."""
    return str(value) if isinstance(value, str) else None


def extract_string_array(value: Any) -> list[str] | None:
    """Return the strings in an array value, or None if there are none."""
    if not isinstance(value, (list, tuple)):
        return None
    strings = [str(item) for item in value if isinstance(item, str)]
    return strings or None


def extract_i64(value: Any) -> int | None:
    """Return the value as a signed 64-bit integer if it fits."""
    if _is_integer(value) and _I64_MIN <= value <= _I64_MAX:
        return int(value)
    return None


def extract_i32(value: Any) -> int | None:
    """Return the value as a signed 32-bit integer if it fits."""
    if _is_integer(value) and _I32_MIN <= value <= _I32_MAX:
        return int(value)
    return None


def extract_f64(value: Any) -> float | None:
    """Return the value if it is a floating-point number."""
    return float(value) if isinstance(value, float) else None


def _first_of(value: Any) -> str | None:
    strings = extract_string_array(value)
    if strings is not None:
        return strings[0]
    return extract_string(value)


def _joined(value: Any) -> str | None:
    strings = extract_string_array(value)
    if strings is not None:
        return ", ".join(strings)
    return extract_string(value)


_FIELDS = {
    "xesam:title": ("title", extract_string),
    "xesam:artist": ("artist", _first_of),
    "xesam:album": ("album", extract_string),
    "mpris:length": ("duration_us", extract_i64),
    "xesam:url": ("file_path", extract_string),
    "xesam:genre": ("genre", _joined),
    "xesam:albumArtist": ("album_artist", _first_of),
    "xesam:trackNumber": ("track_number", extract_i32),
    "xesam:discNumber": ("disc_number", extract_i32),
    "xesam:contentCreated": ("release_date", extract_string),
    "mpris:artUrl": ("art_url", extract_string),
    "xesam:userRating": ("user_rating", extract_f64),
    "xesam:audioBPM": ("bpm", extract_i32),
    "xesam:composer": ("composer", _joined),
    "xesam:musicBrainzTrackID": ("musicbrainz_track_id", extract_string),
}


def parse_metadata(metadata: Mapping[str, Any]) -> Track:
    """Build a Track from an MPRIS metadata mapping."""
    track = Track()
    for key, (attribute, extract) in _FIELDS.items():
        if key in metadata:
            setattr(track, attribute, extract(metadata[key]))
    return track