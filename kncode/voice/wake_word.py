"""Wake word configuration and text-based wake word matching."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class WakeWordMode(str, Enum):
    """How wake words are detected.

    ONNX runs wake word models on the audio stream; STT_FAKE transcribes audio
    and checks whether the transcription starts with a wake word phrase.
    """

    ONNX = "onnx"
    STT_FAKE = "stt_fake"


def _default_model_dir() -> Path:
    try:
        home = Path.home()
    except RuntimeError:
        home = Path("")
    return home / ".kn-code" / "voice" / "models"


def _default_wake_words() -> list[str]:
    return ["hey kn code", "hey code"]


@dataclass
class WakeWordConfig:
    """Settings for wake word detection."""

    mode: WakeWordMode = WakeWordMode.ONNX
    model_dir: Path = field(default_factory=_default_model_dir)
    wake_words: list[str] = field(default_factory=_default_wake_words)
    confidence_threshold: float = 0.5
    detection_cooldown_ms: int = 2000
    chunk_duration_ms: int = 10
    stt_config: Optional[Any] = None

    def __post_init__(self) -> None:
        self.mode = WakeWordMode(self.mode)
        self.model_dir = Path(self.model_dir)
        self.wake_words = list(self.wake_words)


class WakeWordDetector:
    """Finds configured wake words in model files and in transcribed text."""

    def __init__(self, config: Optional[WakeWordConfig] = None) -> None:
        self.config = config if config is not None else WakeWordConfig()
        self._active = threading.Event()
        self._models: dict[str, Path] = {}

    def load_models(self) -> dict[str, Path]:
        """Register the model file of each wake word that has one; return them by word.

        In STT_FAKE mode no models are needed and nothing is loaded.
        """
        if self.config.mode is WakeWordMode.STT_FAKE:
            logger.info("STT fake wake word mode — no ONNX models needed")
            return dict(self._models)

        for word in self.config.wake_words:
            model_path = self.config.model_dir / f"{word.replace(' ', '_')}.onnx"
            if model_path.exists():
                self._models[word] = model_path
                logger.info("Loaded wake word model: %s -> %s", word, model_path)
            else:
                logger.warning(
                    "Wake word model not found: %s (expected at %s)", word, model_path
                )
        return dict(self._models)

    def check_text_for_wake_word(self, text: str) -> Optional[str]:
        """Return the first wake word the trimmed text starts with, ignoring case."""
        lower = text.lower().strip()
        for word in self.config.wake_words:
            if lower.startswith(word.lower()):
                return word
        return None

    def strip_wake_word(self, text: str) -> str:
        """Remove a leading wake word and surrounding whitespace; otherwise return text as is."""
        lower = text.lower()
        for word in self.config.wake_words:
            if lower.startswith(word.lower()):
                return text[len(word):].strip()
        return text

    def stop_listening(self) -> None:
        """Mark the detector as no longer listening."""
        self._active.clear()

    def is_active(self) -> bool:
        """Whether the detector is currently listening."""
        return self._active.is_set()

    def configured_words(self) -> list[str]:
        """The configured wake word phrases, in order."""
        return list(self.config.wake_words)

    def mode(self) -> WakeWordMode:
        """The configured detection mode."""
        return self.config.mode