# listenlog

`listenlog` follows what media players are playing and decides which plays
count as real listens. The rules resemble Last.fm's:

- A play must last at least `min_play_seconds` (30 by default).
- If the track length is known, the play must also cover `min_play_percent`
  of the track (0.5 by default) or last four minutes.
- If the length is unknown, zero or negative, the minimum seconds are enough.

The package has no runtime dependencies. You feed it player events. It keeps
the state of each player, counts seeks and notices skipped intros. Each
qualifying play goes to a callback you provide.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `listenlog.track`

`Track` is a dataclass of track metadata: title, artist, album, `duration_us`,
`file_path`, genre, album artist, track and disc number, release date, art
URL, user rating, BPM, composer and MusicBrainz track id.

`Track.is_local_source(local_players, player_name=None)` returns `True` in
either of these cases:

- The player name, with any `org.mpris.MediaPlayer2.` prefix removed,
  contains one of `local_players`.
- The file path starts with `file://` or `/`.

In every other case it returns `False`.

`TrackState` holds the playback state of one player:

- `start_playing()` and `stop_playing()` change the playback state.
- `played_duration()` and `played_ms()` give the time since playback started.
- `should_log(min_seconds, min_percent)` applies the rules above.
- `on_seeked(position_us)` counts a seek. It adds to `seek_forward_ms` or
  `seek_backward_ms`. It sets `intro_skipped` when a seek goes from before
  5 s to past 15 s.
- `effective_volume()` multiplies `app_volume` by `system_volume`. If only
  one of them is known, it returns that one.

### `listenlog.metadata`

`parse_metadata(mapping)` builds a `Track` from an MPRIS-style metadata
mapping. It reads keys such as `xesam:title`, `xesam:artist`, `mpris:length`
and `xesam:url`:

- For artist and album artist, the first entry of an array is taken.
- Genre and composer arrays are joined with `", "`.

The helpers `extract_string`, `extract_string_array`, `extract_i64`,
`extract_i32` and `extract_f64` convert single values. They return `None`
when the value has the wrong type or is out of range.

### `listenlog.events`

- `PlayerConfig` holds `whitelist`, `blacklist` and `local_only_players`.
  `should_track(name)` checks the blacklist first. An empty whitelist admits
  every player.
- `TrackingConfig` holds these settings:
  - `min_play_seconds` (default 30)
  - `min_play_percent` (default 0.5)
  - `idle_timeout_seconds` (default 0, which means no timeout)
  - `local_only`
  - `track_seeks`
  - `track_context`
- The event classes are `TrackChanged`, `Playing`, `Paused`, `Stopped`,
  `PlayerAppeared`, `PlayerDisappeared` and `Seeked`.
- `signal_to_events(interface, member, sender, body, player_config)` turns
  one bus signal into a list of events. It understands these signals:
  - `NameOwnerChanged`
  - `PropertiesChanged` on the player interface
  - `Seeked`

  Any other signal, or a body of the wrong shape, gives an empty list.

### `listenlog.monitor`

`PlayerMonitor(player_config, tracking_config, log_play)` keeps a `TrackState`
for each player, keyed by unique bus name.

- `add_player(unique_name, well_known_name, metadata, playback_status)` starts
  tracking a player.
- `remove_player(well_known_name)` stops tracking a player.
- `handle_event(event)` applies one event.

When a play qualifies, `log_play` is called with the player's state. This
happens on pause, stop, track change, removal and `finalize()`. With
`local_only` set, non-local plays are not recorded on pause, stop, track
change or `finalize()`. If `log_play` raises, the error is logged and the
monitor carries on.

If you set the `lookup` attribute, the monitor can query players that newly
appear. It is a callable that takes a well-known name and returns
`(unique_name, metadata, status)`.

`run(events)` handles an iterable of events. A `None` item stands for a quiet
moment. The loop ends when any of these happens:

- the iterable runs out,
- `stop()` is called,
- `idle_expired()` reports that no player has been present for
  `idle_timeout_seconds`.

When the loop ends, `run` calls `finalize()`.

## Example

```python
from listenlog.events import PlayerConfig, TrackingConfig, Paused
from listenlog.monitor import PlayerMonitor

logged = []
monitor = PlayerMonitor(PlayerConfig(), TrackingConfig(), logged.append)
monitor.add_player(
    ":1.42",
    "org.mpris.MediaPlayer2.mpv",
    {"xesam:title": "Song", "xesam:artist": ["Band"], "mpris:length": 180_000_000},
    "Playing",
)
# ... once enough time has passed ...
monitor.handle_event(Paused(player=":1.42"))
# logged now holds the state of the play, if it qualified
```

## What it does not do

`listenlog` does not connect to a message bus or talk to players itself. You
supply the signals or events. It does not store plays: recording is left to
the `log_play` callback. It provides no command-line program.