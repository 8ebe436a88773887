#!/usr/bin/env python3
"""
Tests for the speech pipeline.
External tools are replaced with mocks; temp file cleanup is checked on disk.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import subprocess
import pytest
from unittest.mock import patch

from speech_output import SpeechError, SpeechSynthesizer


def completed(returncode=0, stderr=b''):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stderr=stderr)


class TestSpeechSynthesizer:
    """Test SpeechSynthesizer.speak"""

    @pytest.fixture
    def synthesizer(self, tmp_path):
        return SpeechSynthesizer(renderer='espeak', player='paplay', temp_dir=str(tmp_path))

    def test_renders_then_plays(self, synthesizer, tmp_path):
        with patch('speech_output.subprocess.run', return_value=completed()) as run:
            synthesizer.speak('hello world')

        assert run.call_count == 2
        render_cmd = run.call_args_list[0].args[0]
        play_cmd = run.call_args_list[1].args[0]

        assert render_cmd[:2] == ['espeak', '-w']
        assert render_cmd[-1] == 'hello world'
        audio_path = render_cmd[2]
        assert audio_path.endswith('.wav')
        assert os.path.dirname(audio_path) == str(tmp_path)
        assert f'tts_overlay_tts_{os.getpid()}_' in os.path.basename(audio_path)
        assert play_cmd == ['paplay', audio_path]

        # Temp file is gone after playback
        assert list(tmp_path.iterdir()) == []

    def test_renderer_failure_skips_player_and_cleans_up(self, synthesizer, tmp_path):
        with patch('speech_output.subprocess.run', return_value=completed(1, b'bad voice')) as run:
            with pytest.raises(SpeechError, match='espeak returned nonzero status 1: bad voice'):
                synthesizer.speak('hello')

        assert run.call_count == 1
        assert list(tmp_path.iterdir()) == []

    def test_player_failure_cleans_up(self, synthesizer, tmp_path):
        with patch('speech_output.subprocess.run', side_effect=[completed(), completed(2)]):
            with pytest.raises(SpeechError, match='paplay returned nonzero status 2'):
                synthesizer.speak('hello')

        assert list(tmp_path.iterdir()) == []

    def test_missing_tool(self, synthesizer, tmp_path):
        with patch('speech_output.subprocess.run', side_effect=FileNotFoundError()):
            with pytest.raises(SpeechError, match='failed to run espeak; is it installed'):
                synthesizer.speak('hello')

        assert list(tmp_path.iterdir()) == []

    def test_concurrent_paths_are_unique(self, synthesizer):
        with synthesizer._temporary_audio_file() as first:
            with synthesizer._temporary_audio_file() as second:
                assert first != second

    def test_missing_tools(self, tmp_path):
        synthesizer = SpeechSynthesizer(renderer='definitely-not-a-real-tool-xyz', player='sh')
        assert synthesizer.missing_tools() == ['definitely-not-a-real-tool-xyz']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
