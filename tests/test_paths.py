"""
Tests for credential path resolution.

Covers the two gates in front of the filesystem:
- identifier allowlist (InvalidCharacters)
- canonical containment inside the vault root (PathTraversal)
"""

import random
import string
import sys
from pathlib import Path

import pytest

from security.errors import ErrorKind
from security.paths import is_strictly_inside, resolve_credential_path

from test_validation import HOSTILE_SHOP_IDS

needs_symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


class TestResolveCredentialPath:

    def test_builds_file_under_root(self, vault_root):
        result = resolve_credential_path("shop-a", vault_root)
        assert result.ok
        assert result.value == vault_root / "shop-a.credentials.json"

    def test_root_need_not_exist(self, tmp_path):
        result = resolve_credential_path("shop-a", tmp_path / "missing" / "dir")
        assert result.ok

    def test_relative_root_is_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = resolve_credential_path("shop-a", Path("shops") / "credentials")
        assert result.value.is_absolute()
        assert is_strictly_inside(result.value, tmp_path / "shops" / "credentials")

    @pytest.mark.parametrize("shop_id", HOSTILE_SHOP_IDS)
    def test_hostile_ids_are_invalid_characters(self, vault_root, shop_id):
        result = resolve_credential_path(shop_id, vault_root)
        assert not result.ok
        assert result.error.kind is ErrorKind.INVALID_CHARACTERS

    def test_message_has_no_absolute_path(self, vault_root):
        result = resolve_credential_path("../../etc/passwd", vault_root)
        assert str(vault_root) not in result.error.message

    def test_random_identifiers_stay_inside_root(self, vault_root):
        rng = random.Random(1234)
        alphabet = string.ascii_letters + string.digits + "-_./\\\x00 ~:%​ѕ"
        for _ in range(2000):
            candidate = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 60)))
            result = resolve_credential_path(candidate, vault_root)
            if result.ok:
                assert result.value.parent == vault_root
                assert is_strictly_inside(result.value, vault_root)
            else:
                assert result.error.kind in (ErrorKind.INVALID_CHARACTERS, ErrorKind.PATH_TRAVERSAL)

    @needs_symlinks
    def test_symlink_escaping_root_is_path_traversal(self, vault_root, tmp_path):
        vault_root.mkdir(parents=True)
        outside = tmp_path / "outside.json"
        outside.write_text("{}")
        (vault_root / "evil.credentials.json").symlink_to(outside)

        result = resolve_credential_path("evil", vault_root)
        assert result.error.kind is ErrorKind.PATH_TRAVERSAL
        assert result.error.shop_id == "evil"

    @needs_symlinks
    def test_symlinked_root_is_allowed(self, tmp_path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)

        assert resolve_credential_path("shop-a", link).ok


class TestIsStrictlyInside:

    def test_child(self, tmp_path):
        assert is_strictly_inside(tmp_path / "creds" / "a.json", tmp_path / "creds")

    def test_root_itself_is_not_inside(self, tmp_path):
        assert not is_strictly_inside(tmp_path / "creds", tmp_path / "creds")

    def test_sibling_with_shared_prefix(self, tmp_path):
        assert not is_strictly_inside(tmp_path / "creds-evil" / "a.json", tmp_path / "creds")

    def test_dotdot_is_normalized(self, tmp_path):
        assert not is_strictly_inside(tmp_path / "creds" / ".." / "a.json", tmp_path / "creds")
