"""Unit tests for vault credential resolution."""

import json

import pytest

from mfa_server.domain.errors import ConfigIOError, ConfigParseError, MissingCredentialError
from mfa_server.domain.services.credentials import read_user_id_file, resolve_credential


@pytest.mark.unit
class TestResolveCredential:
    """Test the inline-versus-file decision."""

    def test_inline_user_id_wins(self, tmp_path):
        """The file is never read when UserID is inlined."""
        credential = resolve_credential("alice", str(tmp_path / "does-not-exist.json"))
        assert credential.user_id == "alice"
        assert credential.source_file is None

    def test_user_id_file(self, user_id_file):
        credential = resolve_credential(None, str(user_id_file))
        assert credential.user_id == "bob"
        assert credential.source_file == str(user_id_file)

    def test_empty_inline_falls_back_to_file(self, user_id_file):
        assert resolve_credential("", str(user_id_file)).user_id == "bob"

    def test_neither(self):
        with pytest.raises(MissingCredentialError):
            resolve_credential(None, None)

    def test_empty_file_path(self):
        with pytest.raises(MissingCredentialError):
            resolve_credential(None, "")


@pytest.mark.unit
class TestReadUserIdFile:
    """Test indirection file handling."""

    def test_extra_fields_ignored(self, tmp_path):
        path = tmp_path / "userid.json"
        path.write_text(json.dumps({"UserID": "carol", "Comment": "rotated"}))
        assert read_user_id_file(path) == "carol"

    def test_missing_file(self, tmp_path):
        path = tmp_path / "missing.json"
        with pytest.raises(ConfigIOError, match="Could not open UserId file") as exc_info:
            read_user_id_file(path)
        assert exc_info.value.path == str(path)

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "userid.json"
        path.write_text("{not json")
        with pytest.raises(ConfigParseError) as exc_info:
            read_user_id_file(path)
        assert str(path) in str(exc_info.value)

    def test_missing_field(self, tmp_path):
        path = tmp_path / "userid.json"
        path.write_text(json.dumps({"User": "dave"}))
        with pytest.raises(ConfigParseError):
            read_user_id_file(path)

    def test_empty_user_id(self, tmp_path):
        path = tmp_path / "userid.json"
        path.write_text(json.dumps({"UserID": ""}))
        with pytest.raises(MissingCredentialError):
            read_user_id_file(path)
