from pathlib import Path

import pytest

from kncode.voice.wake_word import WakeWordConfig, WakeWordDetector, WakeWordMode


@pytest.fixture
def detector():
    return WakeWordDetector(WakeWordConfig())


def test_default_config_values():
    config = WakeWordConfig()
    assert config.mode is WakeWordMode.ONNX
    assert config.wake_words == ["hey kn code", "hey code"]
    assert config.confidence_threshold == 0.5
    assert config.detection_cooldown_ms == 2000
    assert config.chunk_duration_ms == 10
    assert config.stt_config is None
    assert config.model_dir.parts[-3:] == (".kn-code", "voice", "models")


def test_mode_from_wire_name():
    assert WakeWordMode("stt_fake") is WakeWordMode.STT_FAKE
    assert WakeWordConfig(mode="onnx").mode is WakeWordMode.ONNX


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Hey KN Code build it", "hey kn code"),
        ("   hey code run tests", "hey code"),
        ("HEY CODE", "hey code"),
        ("hello there", None),
        ("please hey code", None),
    ],
)
def test_check_text_for_wake_word(detector, text, expected):
    assert detector.check_text_for_wake_word(text) == expected


def test_strip_wake_word_example(detector):
    assert detector.strip_wake_word("hey kn code build the project") == "build the project"


def test_strip_wake_word_keeps_original_case_of_rest(detector):
    assert detector.strip_wake_word("Hey Code   Run Tests  ") == "Run Tests"


def test_strip_without_wake_word_is_unchanged(detector):
    text = "  just some words "
    assert detector.strip_wake_word(text) == text


def test_strip_only_wake_word_gives_empty(detector):
    assert detector.strip_wake_word("hey code") == ""


def test_load_models_finds_existing_files(tmp_path):
    model = tmp_path / "hey_kn_code.onnx"
    model.write_bytes(b"")
    detector = WakeWordDetector(WakeWordConfig(model_dir=tmp_path))
    loaded = detector.load_models()
    assert loaded == {"hey kn code": model}


def test_load_models_skipped_in_stt_mode(tmp_path):
    (tmp_path / "hey_kn_code.onnx").write_bytes(b"")
    (tmp_path / "hey_code.onnx").write_bytes(b"")
    config = WakeWordConfig(mode=WakeWordMode.STT_FAKE, model_dir=tmp_path)
    assert WakeWordDetector(config).load_models() == {}


def test_load_models_with_no_files(tmp_path):
    detector = WakeWordDetector(WakeWordConfig(model_dir=tmp_path))
    assert detector.load_models() == {}


def test_listening_state(detector):
    assert detector.is_active() is False
    detector.stop_listening()
    assert detector.is_active() is False


def test_configured_words_and_mode():
    config = WakeWordConfig(mode=WakeWordMode.STT_FAKE, wake_words=["computer"])
    detector = WakeWordDetector(config)
    assert detector.configured_words() == ["computer"]
    assert detector.mode() is WakeWordMode.STT_FAKE
    detector.configured_words().append("other")
    assert detector.configured_words() == ["computer"]


def test_custom_words_order_decides(tmp_path):
    detector = WakeWordDetector(WakeWordConfig(wake_words=["hey", "hey code"]))
    assert detector.check_text_for_wake_word("hey code go") == "hey"
    assert detector.strip_wake_word("hey code go") == "code go"


def test_model_dir_accepts_string(tmp_path):
    config = WakeWordConfig(model_dir=str(tmp_path))
    assert config.model_dir == Path(tmp_path)