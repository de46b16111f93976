"""Bookkeeping of media players and recording of finished plays."""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from listenlog.events import (
    Paused,
    PlayerAppeared,
    PlayerConfig,
    PlayerDisappeared,
    Playing,
    Seeked,
    Stopped,
    TrackChanged,
    TrackingConfig,
)
from listenlog.metadata import MPRIS_PREFIX, parse_metadata
from listenlog.track import TrackState

logger = logging.getLogger(__name__)

# Given a well-known bus name, returns its unique name, its metadata and its
# playback status (either of the last two may be None when unavailable).
PlayerLookup = Callable[[str], "tuple[str, Mapping[str, Any] | None, str | None]"]


def _describe(state: TrackState) -> str:
    artist = state.track.artist or "Unknown"
    title = state.track.title or "Unknown"
    return f"{artist} - {title}"


class PlayerMonitor:
    """Follows the state of every tracked player and records qualifying plays.

    ``log_play`` is called with a snapshot of a player's state whenever a
    play is long enough to be recorded.  ``lookup``, when set, is used to
    query a player that newly appeared on the bus.
    """

    def __init__(
        self,
        player_config: PlayerConfig,
        tracking_config: TrackingConfig,
        log_play: Callable[[TrackState], Any],
    ) -> None:
        self.player_config = player_config
        self.tracking_config = tracking_config
        self._log_play_callback = log_play
        self.lookup: PlayerLookup | None = None
        # Unique bus name -> state of the player behind it.
        self.players: dict[str, TrackState] = {}
        # Unique bus name -> well-known bus name.
        self.bus_names: dict[str, str] = {}
        self.running = True
        # Monotonic clock reading since when no player has been present.
        self.idle_since: float | None = None

    def add_player(
        self,
        unique_name: str,
        well_known_name: str,
        metadata: Mapping[str, Any] | None,
        playback_status: str | None,
    ) -> None:
        """Start tracking a player, seeding its state from the bus."""
        if unique_name in self.players:
            return

        logger.info("Adding player: %s", well_known_name)

        state = TrackState()
        state.player_name = well_known_name.removeprefix(MPRIS_PREFIX)

        if metadata is not None:
            track = parse_metadata(metadata)
            state.track = track
            state.is_local = track.is_local_source(
                self.player_config.local_only_players, state.player_name
            )

        if playback_status == "Playing":
            state.start_playing()
            logger.info("[%s] Already playing: %s", well_known_name, _describe(state))

        self.players[unique_name] = state
        self.bus_names[unique_name] = well_known_name
        self.idle_since = None

    def remove_player(self, well_known_name: str) -> None:
        """Stop tracking a player, recording its current play if it qualifies."""
        unique_name = next(
            (u for u, w in self.bus_names.items() if w == well_known_name), None
        )
        if unique_name is None:
            return

        state = self.players.pop(unique_name, None)
        if state is not None:
            logger.info("Removing player: %s", well_known_name)
            if state.is_playing and state.should_log(
                self.tracking_config.min_play_seconds,
                self.tracking_config.min_play_percent,
            ):
                self._log_play(state)

        self.bus_names.pop(unique_name, None)

        if not self.players:
            logger.info(
                "No players remaining, will exit in %ss if none appear...",
                self.tracking_config.idle_timeout_seconds,
            )
            self.idle_since = time.monotonic()

    def handle_event(self, event: Any) -> None:
        """Apply one player event to the tracked state."""
        match event:
            case PlayerAppeared(player=player):
                self._player_appeared(player)
            case PlayerDisappeared(player=player):
                self.remove_player(player)
            case TrackChanged(player=player, track=track, is_local=is_local):
                self._track_changed(player, track, is_local)
            case Playing(player=player):
                state = self.players.get(player)
                if state is not None and not state.is_playing:
                    state.start_playing()
                    logger.info(
                        "[%s] Playing: %s", self._display_name(player), _describe(state)
                    )
            case Paused(player=player) | Stopped(player=player):
                state = self.players.get(player)
                if state is None:
                    return
                snapshot = copy.deepcopy(state) if self._qualifies(state) else None
                state.stop_playing()
                logger.info("[%s] Paused", self._display_name(player))
                if snapshot is not None:
                    self._log_play(snapshot)
            case Seeked(player=player, position_us=position_us):
                if not self.tracking_config.track_seeks:
                    return
                state = self.players.get(player)
                if state is not None:
                    state.on_seeked(position_us)
                    logger.debug(
                        "[%s] Seeked to %ss (total seeks: %s)",
                        self._display_name(player),
                        int(position_us / 1_000_000),
                        state.seek_count,
                    )

    def finalize(self) -> None:
        """Record every in-progress play that qualifies."""
        for name, state in self.players.items():
            if self._qualifies(state):
                logger.info("Logging final play for %s", name)
                self._log_play(state)

    def idle_expired(self) -> bool:
        """Return True once no player has been present for the idle timeout."""
        timeout = self.tracking_config.idle_timeout_seconds
        if timeout <= 0 or self.idle_since is None:
            return False
        return time.monotonic() - self.idle_since >= timeout

    def stop(self) -> None:
        """Ask ``run`` to finish before handling the next event."""
        self.running = False

    def run(self, events: Iterable[Any]) -> None:
        """Handle events until stopped, idle or out of events, then finalize.

        A ``None`` item stands for a period without events and only gives
        the loop a chance to check the stop flag and the idle timeout.
        """
        logger.info("Starting player monitor...")
        if not self.players:
            logger.info("No players found, starting idle timer...")
            self.idle_since = time.monotonic()

        stream = iter(events)
        while self.running:
            if self.idle_expired():
                logger.info("Idle timeout reached, shutting down...")
                break
            try:
                event = next(stream)
            except StopIteration:
                break
            if event is not None:
                self.handle_event(event)

        self.finalize()

    def _player_appeared(self, player: str) -> None:
        if not self.player_config.should_track(player):
            return
        try:
            if self.lookup is None:
                self.add_player(player, player, None, None)
            else:
                unique_name, metadata, status = self.lookup(player)
                self.add_player(unique_name, player, metadata, status)
        except Exception as exc:  # noqa: BLE001 - a bad player must not stop tracking
            logger.error("Failed to add player %s: %s", player, exc)

    def _track_changed(self, player: str, track: Any, is_local: bool) -> None:
        state = self.players.get(player)
        if state is None:
            return

        snapshot = copy.deepcopy(state) if self._qualifies(state) else None

        old_title = state.track.title
        state.track = track
        state.is_local = is_local
        state.seek_count = 0
        state.intro_skipped = False
        state.seek_forward_ms = 0
        state.seek_backward_ms = 0
        state.last_position_us = 0
        if state.is_playing:
            state.start_playing()

        if track.title != old_title:
            note = (
                " (non-local, won't track)"
                if not is_local and self.tracking_config.local_only
                else ""
            )
            logger.info(
                "[%s] Track changed: %s%s",
                self._display_name(player),
                _describe(state),
                note,
            )

        if snapshot is not None:
            self._log_play(snapshot)

    def _qualifies(self, state: TrackState) -> bool:
        config = self.tracking_config
        return (
            state.is_playing
            and state.should_log(config.min_play_seconds, config.min_play_percent)
            and (not config.local_only or state.is_local)
        )

    def _display_name(self, player: str) -> str:
        return self.bus_names.get(player, player)

    def _log_play(self, state: TrackState) -> None:
        if state.track.title is None:
            return

        seek_info = ""
        if state.seek_count > 0:
            seek_info = f", {state.seek_count} seeks"
            if state.intro_skipped:
                seek_info += ", intro skipped"

        logger.info(
            "Logging play: %s (%ss played%s)",
            _describe(state),
            state.played_ms() // 1000,
            seek_info,
        )
        try:
            self._log_play_callback(state)
        except Exception as exc:  # noqa: BLE001 - storage failures are reported, not fatal
            logger.error("Failed to log play: %s", exc)