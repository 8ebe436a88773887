#!/usr/bin/env python3
"""
Speech output module for TTS Overlay.
Renders text to a temporary WAV with espeak and plays it with paplay.
"""

import os
import shutil
import subprocess
import sys
import tempfile
from contextlib import contextmanager
from typing import Iterator, List, Optional


class SpeechError(Exception):
    """Rendering or playback failed for one utterance"""


class SpeechSynthesizer:
    """
    Two-step speech pipeline built on external tools.

    The renderer is called as ``renderer -w <file> <text>`` and the player
    as ``player <file>``. Both are looked up on PATH for every call, so a
    missing tool only fails the request that needed it.
    """

    def __init__(
        self,
        renderer: str = "espeak",
        player: str = "paplay",
        temp_dir: Optional[str] = None
    ):
        """
        Initialize speech synthesizer.

        Args:
            renderer: Text-to-WAV executable (espeak-compatible -w flag)
            player: WAV player executable
            temp_dir: Directory for temporary audio (default: system temp dir)
        """
        self.renderer = renderer
        self.player = player
        self.temp_dir = temp_dir

    def missing_tools(self) -> List[str]:
        """Return configured tools that are not on PATH"""
        return [tool for tool in (self.renderer, self.player) if shutil.which(tool) is None]

    def speak(self, text: str):
        """
        Render text and play it, blocking until playback ends.

        Raises:
            SpeechError: If either tool is missing or exits non-zero
        """
        with self._temporary_audio_file() as audio_path:
            self._run([self.renderer, '-w', audio_path, text])
            self._run([self.player, audio_path])

    @contextmanager
    def _temporary_audio_file(self) -> Iterator[str]:
        """Yield a unique .wav path and remove it on every exit path"""
        fd, path = tempfile.mkstemp(
            prefix=f'tts_overlay_tts_{os.getpid()}_',
            suffix='.wav',
            dir=self.temp_dir
        )
        os.close(fd)
        try:
            yield path
        finally:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                print(f"  Warning: Could not delete temp file {path}: {e}",
                      file=sys.stderr, flush=True)

    def _run(self, command: List[str]):
        tool = command[0]
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE
            )
        except FileNotFoundError:
            raise SpeechError(f"failed to run {tool}; is it installed?")
        except OSError as e:
            raise SpeechError(f"failed to run {tool}: {e}")

        if result.returncode != 0:
            error_msg = result.stderr.decode('utf-8', errors='ignore').strip()
            message = f"{tool} returned nonzero status {result.returncode}"
            if error_msg:
                message += f": {error_msg}"
            raise SpeechError(message)
