"""Tests for file_handler: vault path validation and decoding."""

import pytest

from vault_publisher.file_handler import (
    decode_bytes,
    resolve_inside,
    validate_directory_path,
)


class TestValidateDirectoryPath:
    def test_existing_directory(self, tmp_path):
        assert validate_directory_path(str(tmp_path)) == tmp_path.resolve()

    def test_expands_user(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / "Notes").mkdir()

        assert validate_directory_path("~/Notes") == (tmp_path / "Notes").resolve()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ValueError, match="Directory not found"):
            validate_directory_path(str(tmp_path / "nope"))

    def test_file_is_not_a_directory(self, tmp_path):
        note = tmp_path / "a.md"
        note.write_text("x")

        with pytest.raises(ValueError, match="not a directory"):
            validate_directory_path(str(note))


class TestResolveInside:
    def test_nested_path(self, tmp_path):
        assert resolve_inside(tmp_path, "notes/a.md") == (
            tmp_path / "notes" / "a.md"
        ).resolve()

    @pytest.mark.parametrize("relative", ["../outside.md", "notes/../../x.md"])
    def test_escape_rejected(self, tmp_path, relative):
        with pytest.raises(ValueError, match="outside the vault"):
            resolve_inside(tmp_path, relative)

    def test_absolute_path_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="outside the vault"):
            resolve_inside(tmp_path / "vault", str(tmp_path / "other.md"))


class TestDecodeBytes:
    def test_empty(self):
        assert decode_bytes(b"") == ("", "utf-8")

    def test_ascii_reported_as_utf8(self):
        text, encoding = decode_bytes(b"---\npublish: true\n---\nHello\n")

        assert text.startswith("---\npublish: true")
        assert encoding == "utf-8"

    def test_utf8(self):
        raw = "Zürich café ![[bild.png]]".encode("utf-8")

        text, _ = decode_bytes(raw)

        assert text == "Zürich café ![[bild.png]]"

    def test_latin1_keeps_embeds_readable(self):
        raw = (
            "Les élèves ont visité le musée. Déjà vu, café crème. "
            "![[plan.png]]"
        ).encode("latin-1")

        text, _ = decode_bytes(raw)

        assert "![[plan.png]]" in text
