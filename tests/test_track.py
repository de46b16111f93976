import time
from datetime import timedelta

from listenlog.track import Track, TrackState


def make_playing_state(title, duration_us):
    state = TrackState()
    state.track.title = title
    state.track.duration_us = duration_us
    state.is_playing = True
    state.start_playing()
    return state


def test_should_log_no_title_returns_false():
    state = TrackState()
    state.start_playing()
    time.sleep(0.05)
    assert state.should_log(0, 0.0) is False


def test_should_log_no_start_time_returns_false():
    state = TrackState()
    state.track.title = "Test"
    assert state.should_log(0, 0.0) is False


def test_should_log_under_min_seconds():
    state = make_playing_state("Test", 300_000_000)
    assert state.should_log(30, 0.5) is False


def test_should_log_unknown_duration_only_needs_min_seconds():
    state = make_playing_state("Test", None)
    state.start_time = time.monotonic() - 35
    assert state.should_log(30, 0.5) is True


def test_should_log_zero_duration_only_needs_min_seconds():
    state = make_playing_state("Test", 0)
    state.start_time = time.monotonic() - 35
    assert state.should_log(30, 0.5) is True


def test_should_log_negative_duration_only_needs_min_seconds():
    state = make_playing_state("Test", -1000)
    state.start_time = time.monotonic() - 35
    assert state.should_log(30, 0.5) is True


def test_should_log_50_percent_rule():
    state = make_playing_state("Test", 60_000_000)
    state.start_time = time.monotonic() - 35
    assert state.should_log(30, 0.5) is True


def test_should_log_under_50_percent_under_4_minutes():
    state = make_playing_state("Test", 600_000_000)
    state.start_time = time.monotonic() - 200
    assert state.should_log(30, 0.5) is False

    state.start_time = time.monotonic() - 239
    assert state.should_log(30, 0.5) is False

    state.start_time = time.monotonic() - 240
    assert state.should_log(30, 0.5) is True


def test_should_log_4_minute_rule():
    state = make_playing_state("Test", 3_600_000_000)
    state.start_time = time.monotonic() - 240
    assert state.should_log(30, 0.5) is True


def test_played_duration_zero_without_start():
    state = TrackState()
    assert state.played_duration() == timedelta(0)
    assert state.played_ms() == 0


def test_played_ms_reflects_elapsed_time():
    state = TrackState()
    state.start_time = time.monotonic() - 2
    assert 2000 <= state.played_ms() < 3000


def test_start_and_stop_playing():
    state = TrackState()
    state.start_playing()
    assert state.is_playing is True
    assert state.start_time is not None and state.start_timestamp is not None
    state.stop_playing()
    assert state.is_playing is False


def test_on_seeked_tracks_forward_seek():
    state = TrackState()
    state.last_position_us = 10_000_000
    state.on_seeked(20_000_000)
    assert state.seek_count == 1
    assert state.seek_forward_ms == 10_000
    assert state.seek_backward_ms == 0
    assert state.last_position_us == 20_000_000


def test_on_seeked_tracks_backward_seek():
    state = TrackState()
    state.last_position_us = 30_000_000
    state.on_seeked(10_000_000)
    assert state.seek_count == 1
    assert state.seek_forward_ms == 0
    assert state.seek_backward_ms == 20_000


def test_on_seeked_truncates_sub_millisecond_deltas():
    state = TrackState()
    state.last_position_us = 10_000
    state.on_seeked(8_500)
    assert state.seek_backward_ms == 1


def test_on_seeked_detects_intro_skip():
    state = TrackState()
    state.last_position_us = 2_000_000
    state.on_seeked(20_000_000)
    assert state.intro_skipped is True


def test_on_seeked_no_intro_skip_from_later_position():
    state = TrackState()
    state.last_position_us = 10_000_000
    state.on_seeked(30_000_000)
    assert state.intro_skipped is False


def test_is_local_source_known_player():
    track = Track()
    local_players = ["mpv", "cmus"]
    assert track.is_local_source(local_players, "mpv") is True
    assert track.is_local_source(local_players, "org.mpris.MediaPlayer2.cmus") is True
    assert track.is_local_source(local_players, "spotify") is False


def test_is_local_source_file_url():
    track = Track(file_path="file:///home/user/music/song.mp3")
    assert track.is_local_source([], None) is True


def test_is_local_source_absolute_path():
    track = Track(file_path="/home/user/music/song.mp3")
    assert track.is_local_source([], None) is True


def test_is_local_source_streaming_urls():
    for url in [
        "http://stream.example.com/song",
        "https://stream.example.com/song",
        "spotify:track:abc123",
        "deezer:track:123",
        "tidal:track:123",
    ]:
        track = Track(file_path=url)
        assert track.is_local_source([], None) is False, url


def test_is_local_source_unknown_scheme_is_not_local():
    track = Track(file_path="smb://server/share/song.mp3")
    assert track.is_local_source([], None) is False


def test_effective_volume():
    state = TrackState()

    state.app_volume = 0.8
    state.system_volume = 0.5
    assert state.effective_volume() == 0.4

    state.system_volume = None
    assert state.effective_volume() == 0.8

    state.app_volume = None
    state.system_volume = 0.7
    assert state.effective_volume() == 0.7

    state.system_volume = None
    assert state.effective_volume() is None