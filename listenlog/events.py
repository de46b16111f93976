"""Player filtering configuration and translation of bus signals into events."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from listenlog.metadata import (
    MPRIS_PLAYER_IFACE,
    MPRIS_PREFIX,
    extract_string,
    parse_metadata,
)
from listenlog.track import Track

DBUS_IFACE = "org.freedesktop.DBus"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"


@dataclass
class PlayerConfig:
    """Which players to follow and which ones only ever play local files."""

    whitelist: list[str] = field(default_factory=list)
    blacklist: list[str] = field(default_factory=list)
    local_only_players: list[str] = field(default_factory=list)

    def should_track(self, name: str) -> bool:
        """Return True if the player with bus ``name`` should be followed.

        The blacklist wins over the whitelist; an empty whitelist admits
        every player that is not blacklisted.
        """
        player_id = name.removeprefix(MPRIS_PREFIX)
        if any(p in player_id for p in self.blacklist):
            return False
        if not self.whitelist:
            return True
        return any(p in player_id for p in self.whitelist)


@dataclass
class TrackingConfig:
    """Thresholds and switches that decide what gets recorded."""

    min_play_seconds: int = 30
    min_play_percent: float = 0.5
    idle_timeout_seconds: int = 0
    local_only: bool = False
    track_seeks: bool = True
    track_context: bool = False


@dataclass(frozen=True)
class TrackChanged:
    """A new track started on a player."""

    player: str
    track: Track
    is_local: bool


@dataclass(frozen=True)
class Playing:
    """Playback started."""

    player: str


@dataclass(frozen=True)
class Paused:
    """Playback paused."""

    player: str


@dataclass(frozen=True)
class Stopped:
    """Playback stopped."""

    player: str


@dataclass(frozen=True)
class PlayerAppeared:
    """A player appeared on the bus."""

    player: str


@dataclass(frozen=True)
class PlayerDisappeared:
    """A player left the bus."""

    player: str


@dataclass(frozen=True)
class Seeked:
    """The player jumped to a new position."""

    player: str
    position_us: int


MprisEvent = Union[
    TrackChanged, Playing, Paused, Stopped, PlayerAppeared, PlayerDisappeared, Seeked
]

_STATUS_EVENTS = {"Playing": Playing, "Paused": Paused, "Stopped": Stopped}


def _unpack(body: Any, size: int) -> tuple | None:
    if isinstance(body, (tuple, list)) and len(body) == size:
        return tuple(body)
    return None


def _name_owner_changed(body: Any) -> list[MprisEvent]:
    parts = _unpack(body, 3)
    if parts is None or not all(isinstance(p, str) for p in parts):
        return []
    name, old_owner, new_owner = parts
    if not name.startswith(MPRIS_PREFIX):
        return []
    if not new_owner and old_owner:
        return [PlayerDisappeared(name)]
    if new_owner and not old_owner:
        return [PlayerAppeared(name)]
    return []


def _properties_changed(
    sender: str | None, body: Any, player_config: PlayerConfig
) -> list[MprisEvent]:
    parts = _unpack(body, 3)
    if parts is None:
        return []
    iface, changed, invalidated = parts
    if (
        not isinstance(iface, str)
        or not isinstance(changed, Mapping)
        or not isinstance(invalidated, Sequence)
    ):
        return []
    if iface != MPRIS_PLAYER_IFACE or sender is None:
        return []

    events: list[MprisEvent] = []

    if "PlaybackStatus" in changed:
        status = extract_string(changed["PlaybackStatus"])
        if status is not None:
            event_type = _STATUS_EVENTS.get(status)
            if event_type is None:
                # An unknown status abandons the whole signal.
                return events
            events.append(event_type(sender))

    metadata = changed.get("Metadata")
    if isinstance(metadata, Mapping):
        track = parse_metadata(metadata)
        is_local = track.is_local_source(player_config.local_only_players, sender)
        events.append(TrackChanged(sender, track, is_local))

    return events


def _seeked(sender: str | None, body: Any) -> list[MprisEvent]:
    if sender is None:
        return []
    position = body
    single = _unpack(body, 1)
    if single is not None:
        position = single[0]
    if isinstance(position, int) and not isinstance(position, bool):
        return [Seeked(sender, position)]
    return []


def signal_to_events(
    interface: str | None,
    member: str | None,
    sender: str | None,
    body: Any,
    player_config: PlayerConfig,
) -> list[MprisEvent]:
    """Turn one bus signal into the player events it announces.

    Signals that are not about media players, or whose body has the wrong
    shape, yield no events.
    """
    if interface == DBUS_IFACE and member == "NameOwnerChanged":
        return _name_owner_changed(body)
    if interface == PROPERTIES_IFACE and member == "PropertiesChanged":
        return _properties_changed(sender, body, player_config)
    if interface == MPRIS_PLAYER_IFACE and member == "Seeked":
        return _seeked(sender, body)
    return []