"""Unit tests for the key generation CLI script."""

import stat
import sys

import pytest

import scripts.generate_keypair as generate_module
from fedisign.auth.keys import KeyStore


class TestGenerateKeypair:
    """Tests for generate_keypair.main()."""

    def test_writes_key_pair(self, tmp_path, capsys):
        result = generate_module.main(["--out-dir", str(tmp_path)])

        assert result == 0
        store = KeyStore(tmp_path / "private.pem", tmp_path / "public.pem")
        store.load()
        assert store.key_pair.key_size == 2048
        captured = capsys.readouterr()
        assert f"Wrote {tmp_path / 'private.pem'}" in captured.out

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_private_key_is_owner_only(self, tmp_path):
        generate_module.main(["--out-dir", str(tmp_path)])

        mode = stat.S_IMODE((tmp_path / "private.pem").stat().st_mode)
        assert mode == 0o600

    def test_refuses_to_overwrite(self, key_files, capsys):
        private_path, _ = key_files
        before = private_path.read_text()

        result = generate_module.main(["--out-dir", str(private_path.parent)])

        assert result == 1
        assert private_path.read_text() == before
        assert "Refusing to overwrite" in capsys.readouterr().err

    def test_force_overwrites(self, key_files):
        private_path, _ = key_files
        before = private_path.read_text()

        result = generate_module.main(["--out-dir", str(private_path.parent), "--force"])

        assert result == 0
        assert private_path.read_text() != before

    def test_rejects_small_key(self, tmp_path, capsys):
        result = generate_module.main(["--out-dir", str(tmp_path), "--bits", "1024"])

        assert result == 1
        assert not (tmp_path / "private.pem").exists()
        assert "Key generation failed" in capsys.readouterr().err
