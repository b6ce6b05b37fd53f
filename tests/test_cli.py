"""Unit tests for the pydbx CLI commands."""

import io
import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from pydbx.cli import main
from pydbx.exceptions import DropboxAPIError
from pydbx.models import ListRevisionsResult, Metadata, SearchMatch, SearchResult
from pydbx.utils import content_hash


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_config():
    """Mock the config module."""
    with patch("pydbx.cli.config") as mock:
        mock.is_configured.return_value = True
        mock.get_config_path.return_value = Path("/mock/config")
        yield mock


@pytest.fixture
def mock_client(mock_config):
    """Patch DropboxClient in the CLI and return the instance."""
    with patch("pydbx.cli.DropboxClient") as mock_class:
        client = Mock()
        mock_class.return_value = client
        client.__enter__ = Mock(return_value=client)
        client.__exit__ = Mock(return_value=False)
        yield client


def _file(name="a.txt", size=5, **kwargs):
    return Metadata(
        tag="file",
        name=name,
        path_display=f"/{name}",
        path_lower=f"/{name.lower()}",
        size=size,
        server_modified=datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc),
        **kwargs,
    )


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        """Test main help shows the commands."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "pydbx" in result.output
        assert "--token" in result.output
        for command in ("hash", "ls", "upload", "download", "search", "revisions"):
            assert command in result.output

    def test_no_token_configured(self, runner, mock_config):
        mock_config.is_configured.return_value = False
        result = runner.invoke(main, ["ls"], env={"DROPBOX_ACCESS_TOKEN": ""})
        assert result.exit_code == 1
        assert "Access token not configured" in result.output


class TestHashCommand:
    """Tests for the hash command."""

    def test_hash_file(self, runner, tmp_path):
        path = tmp_path / "a.bin"
        path.write_bytes(b"hello")

        result = runner.invoke(main, ["hash", str(path)])

        assert result.exit_code == 0
        assert content_hash(io.BytesIO(b"hello")) in result.output

    def test_hash_json(self, runner, tmp_path):
        path = tmp_path / "a.bin"
        path.write_bytes(b"")

        result = runner.invoke(main, ["--json", "hash", str(path)])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == [
            {"path": str(path), "content_hash": content_hash(io.BytesIO(b""))}
        ]

    def test_hash_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["hash", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "Cannot open file" in result.output


class TestFileCommands:
    """Tests for commands that talk to the API."""

    def test_ls(self, runner, mock_client):
        mock_client.files.list_folder_all.return_value = iter(
            [_file("b.txt"), Metadata(tag="folder", name="docs", path_display="/docs")]
        )

        result = runner.invoke(main, ["ls", "/"])

        assert result.exit_code == 0
        assert "/docs" in result.output
        assert "/b.txt" in result.output
        mock_client.files.list_folder_all.assert_called_once_with(
            "/", recursive=False, include_deleted=False
        )

    def test_ls_json(self, runner, mock_client):
        mock_client.files.list_folder_all.return_value = iter([_file()])

        result = runner.invoke(main, ["--json", "ls"])

        assert result.exit_code == 0
        assert json.loads(result.output)[0]["name"] == "a.txt"

    def test_ls_api_error(self, runner, mock_client):
        mock_client.files.list_folder_all.side_effect = DropboxAPIError(
            "path/not_found/..", tag="not_found"
        )

        result = runner.invoke(main, ["ls", "/missing"])

        assert result.exit_code == 1
        assert "path/not_found" in result.output

    def test_stat(self, runner, mock_client):
        mock_client.files.get_metadata.return_value = _file(content_hash="abc123", rev="015f")

        result = runner.invoke(main, ["stat", "/a.txt"])

        assert result.exit_code == 0
        assert "abc123" in result.output
        assert "015f" in result.output

    def test_mkdir(self, runner, mock_client):
        mock_client.files.create_folder.return_value = Metadata(
            tag="folder", name="new", path_display="/new"
        )

        result = runner.invoke(main, ["mkdir", "/new"])

        assert result.exit_code == 0
        assert "Folder created: /new" in result.output
        mock_client.files.create_folder.assert_called_once_with("/new", autorename=False)

    def test_rm_permanent(self, runner, mock_client):
        result = runner.invoke(main, ["rm", "/a.txt", "--permanent"])

        assert result.exit_code == 0
        mock_client.files.permanently_delete.assert_called_once_with("/a.txt")
        mock_client.files.delete.assert_not_called()

    def test_mv(self, runner, mock_client):
        mock_client.files.move.return_value = _file("b.txt")

        result = runner.invoke(main, ["mv", "/a.txt", "/b.txt"])

        assert result.exit_code == 0
        assert "Moved" in result.output
        mock_client.files.move.assert_called_once_with("/a.txt", "/b.txt", autorename=False)

    def test_cp(self, runner, mock_client):
        mock_client.files.copy.return_value = _file("b.txt")
        result = runner.invoke(main, ["cp", "/a.txt", "/b.txt"])
        assert result.exit_code == 0
        assert "Copied" in result.output

    def test_upload(self, runner, mock_client, tmp_path):
        local = tmp_path / "notes.txt"
        local.write_bytes(b"hello")
        mock_client.files.upload_file.return_value = _file("notes.txt")

        result = runner.invoke(main, ["upload", str(local), "--mode", "overwrite"])

        assert result.exit_code == 0
        mock_client.files.upload_file.assert_called_once_with(
            str(local), "/notes.txt", mode="overwrite", autorename=False, verify=True
        )

    def test_download_quiet(self, runner, mock_client, tmp_path):
        mock_client.files.download_to_path.return_value = _file()
        target = tmp_path / "a.txt"

        result = runner.invoke(main, ["--quiet", "download", "/a.txt", str(target)])

        assert result.exit_code == 0
        mock_client.files.download_to_path.assert_called_once_with(
            "/a.txt", str(target), verify=True
        )

    def test_download_with_progress(self, runner, mock_client, tmp_path):
        """Test download reports progress through the rich progress bar."""
        target = tmp_path / "a.txt"
        updates = []

        def _download(remote, local, progress_callback=None, verify=True):
            for done in (2, 5):
                progress_callback(done, 5)
                updates.append(done)
            return _file()

        mock_client.files.download_to_path.side_effect = _download

        result = runner.invoke(main, ["download", "/a.txt", str(target)])

        assert result.exit_code == 0
        assert updates == [2, 5]
        assert "Downloaded: /a.txt" in result.output
        kwargs = mock_client.files.download_to_path.call_args[1]
        assert callable(kwargs["progress_callback"])
        assert kwargs["verify"] is True

    def test_search(self, runner, mock_client):
        mock_client.files.search.return_value = SearchResult(
            matches=[SearchMatch(metadata=_file("prime.txt"))]
        )

        result = runner.invoke(main, ["search", "prime", "-n", "5"])

        assert result.exit_code == 0
        assert "/prime.txt" in result.output
        options = mock_client.files.search.call_args[1]["options"]
        assert options.max_results == 5

    def test_revisions(self, runner, mock_client):
        mock_client.files.list_revisions.return_value = ListRevisionsResult(
            entries=[_file(rev="rev1"), _file(rev="rev2")]
        )

        result = runner.invoke(main, ["revisions", "/a.txt", "--limit", "2"])

        assert result.exit_code == 0
        assert "rev1" in result.output
        assert "rev2" in result.output
        mock_client.files.list_revisions.assert_called_once_with("/a.txt", limit=2)

    def test_restore(self, runner, mock_client):
        mock_client.files.restore.return_value = _file(rev="rev1")
        result = runner.invoke(main, ["restore", "/a.txt", "rev1"])
        assert result.exit_code == 0
        assert "rev1" in result.output

    def test_thumbnail(self, runner, mock_client, tmp_path):
        body = Mock()
        body.__enter__ = Mock(return_value=body)
        body.__exit__ = Mock(return_value=False)
        body.iter_bytes.return_value = iter([b"\xff\xd8", b"\xff\xd9"])
        mock_client.files.get_thumbnail.return_value = Mock(body=body)
        out_file = tmp_path / "thumb.jpg"

        result = runner.invoke(main, ["thumbnail", "/img.png", str(out_file)])

        assert result.exit_code == 0
        assert out_file.read_bytes() == b"\xff\xd8\xff\xd9"


class TestInitCommand:
    """Tests for the init command."""

    def test_init_with_valid_token(self, runner, mock_client, mock_config):
        result = runner.invoke(main, ["init"], input="valid_token\n")

        assert result.exit_code == 0
        assert "Access token is valid" in result.output
        assert "Configuration saved successfully" in result.output
        mock_config.save_access_token.assert_called_once_with("valid_token")

    def test_init_with_invalid_token_cancel(self, runner, mock_client, mock_config):
        mock_client.files.list_folder.side_effect = DropboxAPIError("invalid_access_token/")

        result = runner.invoke(main, ["init"], input="bad\nn\n")

        assert result.exit_code == 1
        assert "Configuration cancelled" in result.output
        mock_config.save_access_token.assert_not_called()

    def test_init_with_invalid_token_save_anyway(self, runner, mock_client, mock_config):
        mock_client.files.list_folder.side_effect = DropboxAPIError("invalid_access_token/")

        result = runner.invoke(main, ["init"], input="bad\ny\n")

        assert result.exit_code == 0
        mock_config.save_access_token.assert_called_once_with("bad")
