#!/usr/bin/env python3
"""
Configuration loader for TTS Overlay.
Loads and validates replacements and speech settings from
~/.config/tts-overlay/config.toml
"""

import os
import sys
import tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class SpeechConfig:
    """External speech tools"""
    renderer: str = "espeak"
    player: str = "paplay"


@dataclass
class DaemonConfig:
    """Daemon concurrency settings"""
    max_workers: int = 8
    read_timeout: float = 5.0


@dataclass
class TTSOverlayConfig:
    """Complete TTS Overlay configuration"""
    replacements: Dict[str, str] = field(default_factory=dict)
    speech: SpeechConfig = None
    daemon: DaemonConfig = None

    def __post_init__(self):
        if self.speech is None:
            self.speech = SpeechConfig()
        if self.daemon is None:
            self.daemon = DaemonConfig()


def default_config_path() -> Path:
    """Config file location, honouring XDG_CONFIG_HOME"""
    config_home = os.environ.get('XDG_CONFIG_HOME')
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "tts-overlay" / "config.toml"


class ConfigLoader:
    """Loads and validates TTS Overlay configuration from TOML file"""

    MAX_WORKERS_MIN = 1
    MAX_WORKERS_MAX = 64
    READ_TIMEOUT_MIN = 0.1
    READ_TIMEOUT_MAX = 60.0

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize ConfigLoader.

        Args:
            config_path: Path to config file (default: ~/.config/tts-overlay/config.toml)
        """
        self.config_path = Path(config_path) if config_path else default_config_path()

    def load(self) -> TTSOverlayConfig:
        """
        Load and validate configuration from file.

        Returns:
            TTSOverlayConfig with validated settings

        Raises:
            SystemExit: On validation errors (with clear error messages)
        """
        # Create default config if file doesn't exist
        if not self.config_path.exists():
            self._create_default_config()
            print(f"✓ Created default config: {self.config_path}", flush=True)
            return TTSOverlayConfig()

        try:
            with open(self.config_path, 'rb') as f:
                config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            self._error(f"Invalid TOML syntax in config file:\n{e}\n\nPlease fix {self.config_path} and restart.")
        except OSError as e:
            self._error(f"Failed to read config file:\n{e}\n\nPlease check {self.config_path} and restart.")

        return TTSOverlayConfig(
            replacements=self._load_replacements(config_data),
            speech=self._load_speech_config(config_data),
            daemon=self._load_daemon_config(config_data)
        )

    def _load_replacements(self, config_data: dict) -> Dict[str, str]:
        """Validate [replacements] as a table of string -> string"""
        section = config_data.get('replacements', {})
        if not isinstance(section, dict):
            self._error(
                f"[replacements] must be a table, e.g.\n"
                f"[replacements]\n"
                f"brb = \"be right back\"\n\n"
                f"Please fix {self.config_path} and restart."
            )

        for pattern, replacement in section.items():
            if not isinstance(replacement, str):
                self._error(
                    f"Invalid replacement for '{pattern}': {replacement!r}\n"
                    f"Replacements must be strings.\n\n"
                    f"Please fix {self.config_path} and restart."
                )

        # tomllib keeps document order, which is the order rules are applied in
        return dict(section)

    def _load_speech_config(self, config_data: dict) -> SpeechConfig:
        """Load optional [speech] section"""
        if 'speech' not in config_data:
            return SpeechConfig()

        section = self._section(config_data, 'speech')
        renderer = section.get('renderer', 'espeak')
        player = section.get('player', 'paplay')

        for key, value in (('renderer', renderer), ('player', player)):
            if not isinstance(value, str) or not value.strip():
                self._error(
                    f"Invalid [speech] {key}: {value!r}\n"
                    f"Must be the name or path of an executable.\n\n"
                    f"Please fix {self.config_path} and restart."
                )

        return SpeechConfig(renderer=renderer, player=player)

    def _load_daemon_config(self, config_data: dict) -> DaemonConfig:
        """Load optional [daemon] section"""
        if 'daemon' not in config_data:
            return DaemonConfig()

        section = self._section(config_data, 'daemon')

        try:
            max_workers = int(section.get('max_workers', 8))
        except (ValueError, TypeError):
            self._error(
                f"Invalid max_workers value: {section['max_workers']}\n"
                f"Must be an integer between {self.MAX_WORKERS_MIN} and {self.MAX_WORKERS_MAX}\n\n"
                f"Please fix {self.config_path} and restart."
            )

        try:
            read_timeout = float(section.get('read_timeout', 5.0))
        except (ValueError, TypeError):
            self._error(
                f"Invalid read_timeout value: {section['read_timeout']}\n"
                f"Must be a number between {self.READ_TIMEOUT_MIN} and {self.READ_TIMEOUT_MAX}\n\n"
                f"Please fix {self.config_path} and restart."
            )

        if not (self.MAX_WORKERS_MIN <= max_workers <= self.MAX_WORKERS_MAX):
            self._error(
                f"ERROR: Invalid max_workers in config.toml\n"
                f"Found: {max_workers}\n"
                f"Valid range: {self.MAX_WORKERS_MIN} to {self.MAX_WORKERS_MAX}\n\n"
                f"Please fix {self.config_path} and restart."
            )

        if not (self.READ_TIMEOUT_MIN <= read_timeout <= self.READ_TIMEOUT_MAX):
            self._error(
                f"ERROR: Invalid read_timeout in config.toml\n"
                f"Found: {read_timeout}\n"
                f"Valid range: {self.READ_TIMEOUT_MIN} to {self.READ_TIMEOUT_MAX} seconds\n\n"
                f"Please fix {self.config_path} and restart."
            )

        return DaemonConfig(max_workers=max_workers, read_timeout=read_timeout)

    def _section(self, config_data: dict, name: str) -> dict:
        """Return a table section, exiting if it has the wrong shape"""
        section = config_data[name]
        if not isinstance(section, dict):
            self._error(
                f"[{name}] must be a table.\n\n"
                f"Please fix {self.config_path} and restart."
            )
        return section

    def _create_default_config(self):
        """Create default configuration file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        default_content = """# TTS Overlay Configuration

[replacements]
# Whole-word substitutions applied before speaking, top to bottom.
# Keys are regular expressions matched on word boundaries.
# Prefix a word with a backslash to have it spoken literally.
# brb = "be right back"

# [speech]
# renderer = "espeak"   # called as: renderer -w <file.wav> <text>
# player = "paplay"     # called as: player <file.wav>

# [daemon]
# max_workers = 8       # requests handled at the same time
# read_timeout = 5.0    # seconds to wait for a client's line
"""

        with open(self.config_path, 'w') as f:
            f.write(default_content)

    def _error(self, message: str):
        """Print error message and exit"""
        print(f"\n{message}\n", file=sys.stderr, flush=True)
        sys.exit(1)
