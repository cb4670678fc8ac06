"""Tests for the file-backed artifact store."""

from __future__ import annotations

import os
import stat

import pytest

from site_autoenhance.domain.exceptions import ArtifactUnavailable
from site_autoenhance.infrastructure.artifact_store import FileArtifactStore, atomic_write_text


@pytest.fixture
def site(tmp_path):
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "style.css").write_text("body {}\n", encoding="utf-8")
    return tmp_path


class TestFileArtifactStore:
    def test_read(self, site) -> None:
        assert FileArtifactStore(site).read("css/style.css") == "body {}\n"

    def test_read_missing(self, site) -> None:
        with pytest.raises(ArtifactUnavailable) as excinfo:
            FileArtifactStore(site).read("js/script.js")
        assert excinfo.value.path == "js/script.js"
        assert excinfo.value.operation == "read"

    def test_read_undecodable(self, site) -> None:
        (site / "index.html").write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(ArtifactUnavailable):
            FileArtifactStore(site).read("index.html")

    def test_write_creates_parents(self, site) -> None:
        store = FileArtifactStore(site)
        store.write("js/script.js", "console.log(1);\n")
        assert (site / "js" / "script.js").read_text(encoding="utf-8") == "console.log(1);\n"

    def test_write_preserves_newlines(self, site) -> None:
        store = FileArtifactStore(site)
        store.write("index.html", "a\r\nb\n")
        assert (site / "index.html").read_bytes() == b"a\r\nb\n"

    def test_path_escape_rejected(self, site) -> None:
        with pytest.raises(ArtifactUnavailable, match="escapes"):
            FileArtifactStore(site).read("../outside.css")

    def test_exists_and_delete(self, site) -> None:
        store = FileArtifactStore(site)
        assert store.exists("css/style.css")
        store.delete("css/style.css")
        assert not store.exists("css/style.css")
        with pytest.raises(ArtifactUnavailable):
            store.delete("css/style.css")

    def test_failed_write_keeps_previous_content(self, site, monkeypatch) -> None:
        store = FileArtifactStore(site)

        def fail_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(ArtifactUnavailable) as excinfo:
            store.write("css/style.css", "body { color: red; }\n")
        assert excinfo.value.operation == "write"
        assert (site / "css" / "style.css").read_text(encoding="utf-8") == "body {}\n"
        # no temp files left behind
        assert sorted(p.name for p in (site / "css").iterdir()) == ["style.css"]


def test_atomic_write_text_overwrites(tmp_path) -> None:
    target = tmp_path / "log.json"
    atomic_write_text(target, "[]")
    atomic_write_text(target, "[1]")
    assert target.read_text(encoding="utf-8") == "[1]"


def test_crlf_round_trip(tmp_path) -> None:
    (tmp_path / "index.html").write_bytes(b"<p>a</p>\r\n")
    store = FileArtifactStore(tmp_path)
    store.write("index.html", store.read("index.html") + "<p>b</p>\r\n")
    assert (tmp_path / "index.html").read_bytes() == b"<p>a</p>\r\n<p>b</p>\r\n"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
class TestPermissions:
    def test_write_keeps_existing_mode(self, tmp_path) -> None:
        target = tmp_path / "style.css"
        target.write_text("body {}\n", encoding="utf-8")
        target.chmod(0o644)

        FileArtifactStore(tmp_path).write("style.css", "body { margin: 0; }\n")

        assert stat.S_IMODE(target.stat().st_mode) == 0o644

    def test_new_file_follows_umask(self, tmp_path) -> None:
        umask = os.umask(0o022)
        try:
            atomic_write_text(tmp_path / "enhancement-log.json", "[]")
        finally:
            os.umask(umask)
        assert stat.S_IMODE((tmp_path / "enhancement-log.json").stat().st_mode) == 0o644
