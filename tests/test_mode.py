"""
Tests for ReplayTap Recording Mode

Tests mode resolution from environment variables and process arguments,
including precedence and rejection of unknown explicit values.
"""

import pytest

from replaytap.common import InvalidRecordingMode
from replaytap.config import RecordingMode, resolve_recording_mode, is_truthy


class TestRecordingMode:
    """Test the RecordingMode enum."""

    def test_cases_are_distinct(self):
        """Test the three modes differ."""
        assert RecordingMode.PLAYBACK != RecordingMode.RECORD
        assert RecordingMode.PLAYBACK != RecordingMode.LIVE
        assert RecordingMode.RECORD != RecordingMode.LIVE

    def test_string_values(self):
        """Test modes compare equal to their names."""
        assert RecordingMode.PLAYBACK == 'playback'
        assert RecordingMode('live') is RecordingMode.LIVE

    @pytest.mark.parametrize('value,expected', [
        ('playback', RecordingMode.PLAYBACK),
        ('replay', RecordingMode.PLAYBACK),
        ('record', RecordingMode.RECORD),
        ('Recording', RecordingMode.RECORD),
        ('  LIVE\n', RecordingMode.LIVE),
        ('passthrough', RecordingMode.LIVE),
    ])
    def test_parse(self, value, expected):
        """Test explicit names and aliases."""
        assert RecordingMode.parse(value) is expected

    def test_parse_unknown(self):
        """Test unknown names raise."""
        with pytest.raises(InvalidRecordingMode) as exc_info:
            RecordingMode.parse('rewind')

        assert exc_info.value.value == 'rewind'


class TestResolveRecordingMode:
    """Test resolution precedence."""

    def test_default_playback(self):
        """Test nothing set yields playback."""
        assert resolve_recording_mode({}, []) is RecordingMode.PLAYBACK

    def test_explicit_live(self):
        """Test REPLAY_MODE=live yields live."""
        assert resolve_recording_mode({'REPLAY_MODE': 'live'}, []) is RecordingMode.LIVE

    def test_explicit_record(self):
        """Test REPLAY_MODE=record yields record."""
        assert resolve_recording_mode({'REPLAY_MODE': 'RECORD '}, []) is RecordingMode.RECORD

    def test_explicit_unknown_raises(self):
        """Test an unrecognized explicit value fails loudly."""
        with pytest.raises(InvalidRecordingMode):
            resolve_recording_mode({'REPLAY_MODE': 'sometimes'}, [])

    def test_explicit_blank_ignored(self):
        """Test a blank REPLAY_MODE counts as unset."""
        assert resolve_recording_mode({'REPLAY_MODE': '  ', 'REPLAY_LIVE': '1'}, []) is RecordingMode.LIVE

    def test_explicit_beats_flags(self):
        """Test REPLAY_MODE wins over boolean flags and switches."""
        environ = {'REPLAY_MODE': 'playback', 'REPLAY_LIVE': '1', 'REPLAY_RECORDING': '1'}

        assert resolve_recording_mode(environ, ['--enable-replay-live']) is RecordingMode.PLAYBACK

    def test_live_flag_beats_record_flag(self):
        """Test REPLAY_LIVE wins over REPLAY_RECORDING."""
        environ = {'REPLAY_LIVE': 'true', 'REPLAY_RECORDING': 'true'}

        assert resolve_recording_mode(environ, []) is RecordingMode.LIVE

    def test_record_flag(self):
        """Test REPLAY_RECORDING yields record."""
        assert resolve_recording_mode({'REPLAY_RECORDING': 'yes'}, []) is RecordingMode.RECORD

    def test_falsy_flags_ignored(self):
        """Test non-truthy flag values are ignored."""
        environ = {'REPLAY_LIVE': '0', 'REPLAY_RECORDING': 'off'}

        assert resolve_recording_mode(environ, []) is RecordingMode.PLAYBACK

    def test_flags_beat_switches(self):
        """Test boolean flags win over command-line switches."""
        assert resolve_recording_mode({'REPLAY_RECORDING': '1'}, ['--enable-replay-live']) is RecordingMode.RECORD

    def test_live_switch(self):
        """Test --enable-replay-live."""
        assert resolve_recording_mode({}, ['pytest', '--enable-replay-live']) is RecordingMode.LIVE

    def test_record_switch(self):
        """Test --enable-replay-recording."""
        assert resolve_recording_mode({}, ['pytest', '--enable-replay-recording']) is RecordingMode.RECORD

    def test_live_switch_beats_record_switch(self):
        """Test live switch wins when both are given."""
        argv = ['--enable-replay-recording', '--enable-replay-live']

        assert resolve_recording_mode({}, argv) is RecordingMode.LIVE

    def test_reads_process_environment(self, monkeypatch):
        """Test defaults come from os.environ."""
        monkeypatch.setenv('REPLAY_MODE', 'live')

        assert resolve_recording_mode(argv=[]) is RecordingMode.LIVE


class TestIsTruthy:
    """Test boolean-style values."""

    @pytest.mark.parametrize('value', ['1', 'true', 'YES', ' y ', 'On'])
    def test_truthy(self, value):
        assert is_truthy(value) is True

    @pytest.mark.parametrize('value', [None, '', '0', 'false', 'no', 'enabled'])
    def test_not_truthy(self, value):
        assert is_truthy(value) is False
