"""Tests for the note vault adapter."""

import logging

import pytest

from vault_publisher.vault import VaultSource, is_publishable, parse_front_matter

PUBLISHED = "---\npublish: true\n---\n"


class TestFrontMatter:
    def test_parses_mapping(self):
        text = "---\ntitle: Hello\npublish: true\ntags: [a, b]\n---\nBody"

        assert parse_front_matter(text) == {
            "title": "Hello",
            "publish": True,
            "tags": ["a", "b"],
        }

    def test_crlf_line_endings(self):
        assert parse_front_matter("---\r\npublish: true\r\n---\r\nBody") == {
            "publish": True
        }

    @pytest.mark.parametrize(
        "text",
        [
            "No front matter",
            "\n---\npublish: true\n---\n",
            "---\n- a\n- b\n---\n",
        ],
    )
    def test_missing_or_non_mapping(self, text):
        assert parse_front_matter(text) == {}

    def test_malformed_yaml_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_front_matter("---\npublish: [oops\n---\n") == {}
        assert "malformed front matter" in caplog.text

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("'true'", True), ("false", False), ("yes please", False)],
    )
    def test_is_publishable(self, value, expected):
        assert is_publishable(f"---\npublish: {value}\n---\n") is expected

    def test_no_flag_is_not_publishable(self):
        assert is_publishable("---\ntitle: draft\n---\n") is False


class TestSelection:
    def test_select_publishable(self, make_vault):
        root = make_vault(
            {
                "a.md": PUBLISHED + "A",
                "notes/b.md": PUBLISHED + "B",
                "draft.md": "---\npublish: false\n---\n",
                "plain.md": "no front matter",
                "Attachments/x.png": b"PNG",
            }
        )

        selected = VaultSource(root).select_publishable()

        assert list(selected) == ["a.md", "notes/b.md"]
        assert selected["a.md"] == (PUBLISHED + "A").encode()

    def test_hidden_directories_skipped(self, make_vault):
        root = make_vault(
            {
                ".obsidian/workspace.md": PUBLISHED,
                ".trash/old.md": PUBLISHED,
                "kept.md": PUBLISHED,
            }
        )

        assert VaultSource(root).iter_documents() == ["kept.md"]

    def test_returns_raw_bytes(self, make_vault):
        raw = (PUBLISHED + "Café crème, déjà vu.").encode("latin-1")
        root = make_vault({"a.md": raw})

        assert VaultSource(root).select_publishable() == {"a.md": raw}

    def test_missing_root(self, tmp_path):
        assert VaultSource(tmp_path / "nope").select_publishable() == {}


class TestMediaReferences:
    def test_extracts_media_embeds_in_order(self):
        text = (
            "![[b.png]] text ![[a.mp3]] ![[note link]] "
            "![[b.png]] [[c.png]] ![[diagram.svg]] ![[sub/d.pdf]]"
        )

        assert VaultSource(None).extract_media_references(text) == [
            "b.png",
            "a.mp3",
            "sub/d.pdf",
        ]

    def test_resolves_from_attachments_first(self, make_vault):
        root = make_vault(
            {"Attachments/x.png": b"attached", "x.png": b"root copy"}
        )

        assert VaultSource(root).resolve_media_bytes("x.png") == b"attached"

    def test_falls_back_to_vault_root(self, make_vault):
        root = make_vault({"img/y.gif": b"GIF"})

        assert VaultSource(root).resolve_media_bytes("img/y.gif") == b"GIF"

    def test_custom_media_folder(self, make_vault):
        root = make_vault({"assets/z.jpg": b"JPG"})

        source = VaultSource(root, media_folder="assets")

        assert source.resolve_media_bytes("z.jpg") == b"JPG"

    def test_missing_media(self, make_vault):
        root = make_vault({"a.md": "x"})

        assert VaultSource(root).resolve_media_bytes("gone.png") is None

    def test_escaping_reference_is_refused(self, make_vault, caplog):
        root = make_vault({"a.md": "x"})
        (root.parent / "secret.png").write_bytes(b"secret")

        with caplog.at_level(logging.WARNING):
            result = VaultSource(root).resolve_media_bytes("../../secret.png")

        assert result is None
        assert "escapes the vault" in caplog.text


class TestReadDocument:
    def test_reads_bytes(self, make_vault):
        root = make_vault({"notes/a.md": "hello"})

        assert VaultSource(root).read_document("notes/a.md") == b"hello"

    def test_missing_note(self, make_vault):
        root = make_vault({"a.md": "x"})

        with pytest.raises(FileNotFoundError, match="Note not found"):
            VaultSource(root).read_document("b.md")

    def test_path_outside_vault(self, make_vault):
        root = make_vault({"a.md": "x"})

        with pytest.raises(ValueError, match="outside the vault"):
            VaultSource(root).read_document("../a.md")
