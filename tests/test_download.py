"""Tests for tarball download and extraction"""
import io
import tarfile
from unittest.mock import MagicMock, patch

import pytest
import requests

from slugbuild.download import download, extract_tarball, fetch_tarball


def _response(status=200, chunks=(b"data",)):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.iter_content.return_value = list(chunks)
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


class TestExtract:
    def test_extract_plain(self, temp_dir, make_tarball):
        archive = make_tarball({"bin/ruby": "ruby", "lib/x.rb": "x"})
        dest = temp_dir / "out"
        extract_tarball(archive, dest)
        assert (dest / "bin" / "ruby").read_text() == "ruby"
        assert (dest / "lib" / "x.rb").exists()

    def test_strip_components(self, temp_dir, make_tarball):
        archive = make_tarball({
            "node-v0.10.30-linux-x64/bin/node": "node",
            "node-v0.10.30-linux-x64/lib/npm.js": "npm",
        })
        dest = temp_dir / "node"
        extract_tarball(archive, dest, strip_components=1)
        assert (dest / "bin" / "node").read_text() == "node"
        assert (dest / "lib" / "npm.js").exists()
        assert not (dest / "node-v0.10.30-linux-x64").exists()

    def test_escaping_member_rejected(self, temp_dir):
        archive = temp_dir / "evil.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            info = tarfile.TarInfo("../escape.txt")
            info.size = 1
            tar.addfile(info, io.BytesIO(b"x"))
        with pytest.raises(RuntimeError, match="Failed to extract"):
            extract_tarball(archive, temp_dir / "out")
        assert not (temp_dir / "escape.txt").exists()


class TestDownload:
    def test_download_writes_file(self, temp_dir):
        dest = temp_dir / "sub" / "file.tgz"
        with patch("slugbuild.download.requests.get", return_value=_response(chunks=[b"ab", b"", b"cd"])) as get:
            download("https://example.com/file.tgz", dest, timeout=5)
        assert dest.read_bytes() == b"abcd"
        get.assert_called_once_with("https://example.com/file.tgz", stream=True, timeout=5)
        assert [p.name for p in dest.parent.iterdir()] == ["file.tgz"]

    def test_http_error(self, temp_dir):
        dest = temp_dir / "file.tgz"
        with patch("slugbuild.download.requests.get", return_value=_response(status=404)):
            with pytest.raises(RuntimeError, match="HTTP 404"):
                download("https://example.com/missing.tgz", dest)
        assert not dest.exists()

    def test_connection_error(self, temp_dir):
        with patch("slugbuild.download.requests.get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(RuntimeError, match="refused"):
                download("https://example.com/x.tgz", temp_dir / "x.tgz")

    def test_fetch_tarball(self, temp_dir, make_tarball):
        archive_bytes = make_tarball({"pkg/bin/tool": "t"}).read_bytes()
        dest = temp_dir / "vendor"
        with patch("slugbuild.download.requests.get", return_value=_response(chunks=[archive_bytes])):
            fetch_tarball("https://example.com/pkg.tgz", dest, strip_components=1)
        assert (dest / "bin" / "tool").read_text() == "t"
