"""Text-to-speech through external synthesis and playback programs."""

from __future__ import annotations

import math
import os
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

_U32_MAX = 4_294_967_295


class TtsEngine(str, Enum):
    """Available speech synthesis engines."""

    PIPER = "piper"
    ESPEAK = "espeak"
    SYSTEM = "system"


@dataclass
class TtsConfig:
    """Settings for speech synthesis."""

    engine: TtsEngine = TtsEngine.PIPER
    voice: Optional[str] = None
    speed: float = 1.0
    output_dir: Optional[Path] = field(default=None)

    def __post_init__(self) -> None:
        self.engine = TtsEngine(self.engine)
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir)


def _words_per_minute(speed: float) -> int:
    value = speed * 100.0
    if math.isnan(value) or value <= 0:
        return 0
    if value >= _U32_MAX:
        return _U32_MAX
    return int(value)


def _run(argv: list[str], failure: str) -> None:
    result = subprocess.run(argv, capture_output=True)
    if result.returncode != 0:
        stderr = (result.stderr or b"").decode("utf-8", errors="replace")
        raise RuntimeError(f"{failure}: {stderr}")


class TextToSpeech:
    """Synthesises speech to WAV files and plays them."""

    def __init__(self, config: Optional[TtsConfig] = None) -> None:
        self.config = config if config is not None else TtsConfig()

    def synthesize_to_file(self, text: str, output_path: Union[str, os.PathLike]) -> Path:
        """Write speech for ``text`` to ``output_path`` and return that path."""
        output = Path(output_path)
        engine = self.config.engine
        if engine is TtsEngine.PIPER:
            raise RuntimeError(
                "Piper TTS engine is not supported — use espeak or system TTS instead"
            )
        if engine is TtsEngine.ESPEAK:
            return self._synthesize_espeak(text, output)
        return self._synthesize_system(text, output)

    def speak(self, text: str) -> None:
        """Synthesise ``text`` to a temporary file, play it, then remove the file."""
        directory = self.config.output_dir or Path(tempfile.gettempdir())
        temp_path = directory / f"kn-tts-{os.getpid()}.wav"
        self.synthesize_to_file(text, temp_path)
        self._play_audio(temp_path)
        try:
            temp_path.unlink()
        except OSError:
            pass

    def _synthesize_espeak(self, text: str, output: Path) -> Path:
        voice = self.config.voice or "en-us"
        speed = _words_per_minute(self.config.speed)
        _run(
            ["espeak", "-w", str(output), "-s", str(speed), "-v", voice, text],
            "eSpeak failed",
        )
        return output

    def _synthesize_system(self, text: str, output: Path) -> Path:
        if sys.platform != "darwin":
            raise RuntimeError("System TTS not supported on this platform")
        _run(["say", "-o", str(output), text], "say command failed")
        return output

    def _play_audio(self, path: Path) -> None:
        if sys.platform == "darwin":
            _run(["afplay", str(path)], "afplay failed")
        elif sys.platform.startswith("linux"):
            _run(["aplay", str(path)], "aplay failed")