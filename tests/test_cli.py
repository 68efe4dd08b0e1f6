import hashlib
import io
import os

import pytest

from binfetch import cli
from binfetch.exceptions import MalformedReferenceError, ReleaseNotFoundError
from binfetch.providers import File

pytestmark = [pytest.mark.unit]


def _artifact(payload=b"\x7fELF binary", name="tool"):
    return File(
        data=io.BytesIO(payload), name=name, hash=hashlib.sha256(), version="v1.0.0"
    )


class TestWriteArtifact:
    def test_writes_bytes_and_fills_hash(self, tmp_path):
        artifact = _artifact()

        path = cli.write_artifact(artifact, str(tmp_path / "bin"))

        assert path == str(tmp_path / "bin" / "tool")
        with open(path, "rb") as f:
            assert f.read() == b"\x7fELF binary"
        assert artifact.hash.hexdigest() == hashlib.sha256(b"\x7fELF binary").hexdigest()
        assert artifact.data.closed
        assert not os.path.exists(f"{path}.part")

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_marks_file_executable(self, tmp_path):
        path = cli.write_artifact(_artifact(), str(tmp_path))
        assert os.stat(path).st_mode & 0o777 == 0o755

    def test_overwrites_existing_file(self, tmp_path):
        (tmp_path / "tool").write_bytes(b"old")

        cli.write_artifact(_artifact(b"new"), str(tmp_path))

        assert (tmp_path / "tool").read_bytes() == b"new"


class TestMain:
    def test_fetch(self, mocker, tmp_path):
        provider = mocker.Mock()
        provider.fetch.return_value = _artifact()
        mock_new_provider = mocker.patch("binfetch.cli.new_provider", return_value=provider)

        cli.main(["fetch", "github.com/owner/tool", "-o", str(tmp_path)])

        assert mock_new_provider.call_args[0][0] == "github.com/owner/tool"
        assert (tmp_path / "tool").read_bytes() == b"\x7fELF binary"

    def test_latest(self, mocker, capsys):
        provider = mocker.Mock()
        provider.get_latest_version.return_value = (
            "v2.0.0",
            "https://github.com/owner/tool/releases/tag/v2.0.0",
        )
        mocker.patch("binfetch.cli.new_provider", return_value=provider)

        cli.main(["latest", "https://github.com/owner/tool"])

        out = capsys.readouterr().out
        assert out.strip() == "v2.0.0\thttps://github.com/owner/tool/releases/tag/v2.0.0"

    def test_provider_error_exits_with_status_one(self, mocker):
        provider = mocker.Mock()
        provider.fetch.side_effect = ReleaseNotFoundError("Release not found")
        mocker.patch("binfetch.cli.new_provider", return_value=provider)

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["fetch", "https://github.com/owner/tool"])

        assert exc_info.value.code == 1

    def test_malformed_reference_exits_with_status_one(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["latest", "https://example.com/owner/tool"])

        assert exc_info.value.code == 1

    def test_bad_config_exits_with_status_one(self, tmp_path):
        config = tmp_path / "binfetch.yaml"
        config.write_text("REQUEST_TIMEOUT: soon\n")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--config", str(config), "latest", "github.com/owner/tool"])

        assert exc_info.value.code == 1

    def test_log_level_option(self, mocker):
        mock_set_level = mocker.patch("binfetch.cli.log_utils.set_log_level")
        mocker.patch("binfetch.cli.new_provider", side_effect=MalformedReferenceError("x"))

        with pytest.raises(SystemExit):
            cli.main(["--log-level", "DEBUG", "latest", "github.com/owner/tool"])

        mock_set_level.assert_called_once_with("DEBUG")

    def test_log_level_from_config(self, mocker, tmp_path):
        config = tmp_path / "binfetch.yaml"
        config.write_text("LOG_LEVEL: WARNING\n")
        mock_set_level = mocker.patch("binfetch.cli.log_utils.set_log_level")
        provider = mocker.Mock()
        provider.get_latest_version.return_value = ("v1", "")
        mocker.patch("binfetch.cli.new_provider", return_value=provider)

        cli.main(["--config", str(config), "latest", "github.com/owner/tool"])

        mock_set_level.assert_called_once_with("WARNING")

    def test_no_command_prints_help(self, capsys):
        cli.main([])
        assert "usage: binfetch" in capsys.readouterr().out

    def test_log_dir_option_enables_file_logging(self, mocker, tmp_path):
        mock_file_logging = mocker.patch("binfetch.cli.log_utils.add_file_logging")
        provider = mocker.Mock()
        provider.get_latest_version.return_value = ("v1", "")
        mocker.patch("binfetch.cli.new_provider", return_value=provider)

        cli.main(
            [
                "--log-dir",
                str(tmp_path / "logs"),
                "--log-level",
                "DEBUG",
                "latest",
                "github.com/owner/tool",
            ]
        )

        mock_file_logging.assert_called_once_with(tmp_path / "logs", "DEBUG")

    def test_log_dir_from_config(self, mocker, tmp_path):
        config = tmp_path / "binfetch.yaml"
        config.write_text(f"LOG_DIR: {tmp_path / 'logs'}\n")
        mock_file_logging = mocker.patch("binfetch.cli.log_utils.add_file_logging")
        provider = mocker.Mock()
        provider.get_latest_version.return_value = ("v1", "")
        mocker.patch("binfetch.cli.new_provider", return_value=provider)

        cli.main(["--config", str(config), "latest", "github.com/owner/tool"])

        mock_file_logging.assert_called_once_with(tmp_path / "logs", "INFO")

    def test_no_file_logging_by_default(self, mocker):
        mock_file_logging = mocker.patch("binfetch.cli.log_utils.add_file_logging")
        mocker.patch("binfetch.cli.new_provider", side_effect=MalformedReferenceError("x"))

        with pytest.raises(SystemExit):
            cli.main(["latest", "github.com/owner/tool"])

        mock_file_logging.assert_not_called()

    def test_non_string_log_level_in_config_exits_cleanly(self, tmp_path):
        config = tmp_path / "binfetch.yaml"
        config.write_text("LOG_LEVEL: 10\n")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--config", str(config), "latest", "github.com/owner/tool"])

        assert exc_info.value.code == 1
