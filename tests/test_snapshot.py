"""Tests for the local snapshot builder."""

import logging

from vault_publisher.config_schema import PublishConfig
from vault_publisher.publish.models import EntryKind
from vault_publisher.publish.snapshot import LocalSnapshotBuilder


def _builder(source, settings=None):
    return LocalSnapshotBuilder(
        settings or PublishConfig(),
        source.select_publishable,
        source.extract_media_references,
        source.resolve_media_bytes,
    )


class TestBuild:
    def test_documents_and_media(self, make_source):
        source = make_source(
            documents={"a.md": b"A ![[x.png]]", "b.md": b"B"},
            media={"x.png": b"PNG"},
        )

        entries = _builder(source).build()

        assert [(e.path, e.kind) for e in entries] == [
            ("Attachments/x.png", EntryKind.MEDIA),
            ("a.md", EntryKind.DOCUMENT),
            ("b.md", EntryKind.DOCUMENT),
        ]
        assert entries[0].data == b"PNG"

    def test_shared_media_included_once(self, make_source):
        source = make_source(
            documents={
                "a.md": b"![[x.png]]",
                "b.md": b"![[x.png]] and ![[x.png]]",
            },
            media={"x.png": b"PNG"},
        )

        entries = _builder(source).build()

        assert [e.path for e in entries].count("Attachments/x.png") == 1

    def test_unresolved_media_is_skipped_with_warning(
        self, make_source, caplog
    ):
        source = make_source(documents={"a.md": b"![[missing.png]]"})

        with caplog.at_level(logging.WARNING):
            entries = _builder(source).build()

        assert [e.path for e in entries] == ["a.md"]
        assert "missing.png" in caplog.text

    def test_unresolved_name_does_not_hide_later_match(self, make_source):
        source = make_source(
            documents={"a.md": b"![[old/img.png]] then ![[img.png]]"},
            media={"img.png": b"PNG"},
        )

        entries = _builder(source).build()

        assert [(e.path, e.data) for e in entries] == [
            ("Attachments/img.png", b"PNG"),
            ("a.md", b"![[old/img.png]] then ![[img.png]]"),
        ]

    def test_media_path_uses_basename_and_media_folder(self, make_source):
        source = make_source(
            documents={"a.md": b"![[img/photo.jpg]]"},
            media={"img/photo.jpg": b"JPG"},
        )
        settings = PublishConfig(media_folder="assets")

        entries = _builder(source, settings).build()

        media = [e for e in entries if e.kind == EntryKind.MEDIA]
        assert [e.path for e in media] == ["assets/photo.jpg"]

    def test_empty_selection(self, make_source):
        assert _builder(make_source()).build() == []

    def test_non_utf8_document_is_scanned(self, make_source):
        text = "Café naïve résumé ![[x.png]] déjà vu"
        source = make_source(
            documents={"a.md": text.encode("latin-1")},
            media={"x.png": b"PNG"},
        )

        entries = _builder(source).build()

        assert "Attachments/x.png" in [e.path for e in entries]


class TestBuildSingle:
    def test_document_and_its_media(self, make_source):
        source = make_source(media={"x.png": b"X", "y.gif": b"Y"})

        document, media = _builder(source).build_single(
            "notes/a.md", b"![[x.png]] ![[y.gif]] ![[gone.png]]"
        )

        assert document.path == "notes/a.md"
        assert document.kind == EntryKind.DOCUMENT
        assert [m.path for m in media] == [
            "Attachments/x.png",
            "Attachments/y.gif",
        ]

    def test_does_not_call_selector(self, make_source):
        source = make_source()

        def _selector():
            raise AssertionError("selector must not be called")

        document, media = LocalSnapshotBuilder(
            PublishConfig(),
            _selector,
            source.extract_media_references,
            source.resolve_media_bytes,
        ).build_single("a.md", b"plain")

        assert media == []
        assert document.data == b"plain"
