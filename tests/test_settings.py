import pytest
from pydantic import ValidationError

from callslice.errors import SinkError
from callslice.settings import RefMode, SliceSettings, load_settings
from callslice.sinks import ClipboardSink, FileSink


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CALLSLICE_FULL_RADIUS", "3")
    monkeypatch.setenv("CALLSLICE_REF_MODE", "both")
    settings = load_settings()
    assert settings.full_radius == 3
    assert settings.ref_mode == RefMode.BOTH


def test_settings_custom_prefix(monkeypatch):
    monkeypatch.setenv("SLICE_PRETTY", "false")
    settings = load_settings(env_prefix="SLICE_")
    assert settings.pretty is False


def test_settings_validation():
    with pytest.raises(ValidationError):
        SliceSettings(full_radius=-1)
    with pytest.raises(ValidationError):
        SliceSettings(structural_fields=("id", "src"))
    assert SliceSettings(structural_fields=["id"]).structural_fields == ("id",)


def test_file_sink(tmp_path, capsys):
    target = tmp_path / "out.json"
    FileSink(target).write_text("[]")
    assert target.read_text() == "[]"
    assert f"Wrote 2 bytes to {target}." in capsys.readouterr().err


def test_file_sink_error(tmp_path):
    with pytest.raises(SinkError) as exc:
        FileSink(tmp_path / "missing" / "out.json").write_text("[]")
    assert exc.value.exit_code == 3


def test_clipboard_sink(monkeypatch, capsys):
    copied = []
    monkeypatch.setattr("pyperclip.copy", copied.append)
    ClipboardSink().write_text("héllo")
    assert copied == ["héllo"]
    assert "Copied 6 bytes to clipboard." in capsys.readouterr().err


def test_clipboard_sink_error(monkeypatch):
    import pyperclip

    def _fail(text):
        raise pyperclip.PyperclipException("no clipboard")

    monkeypatch.setattr("pyperclip.copy", _fail)
    with pytest.raises(SinkError):
        ClipboardSink().write_text("x")
