"""Tests for the command interpreter."""

import pytest
from pathlib import Path
from unittest.mock import patch

from siteagent.executors.interpreter import (
    CommandInterpreter,
    FileWriteError,
    PathEscapeError,
    execute_command,
    parse_command,
    write_file,
)
from siteagent.executors.shell_runner import CommandError, execute_shell
from siteagent.schemas import FileWrite, OutcomeStatus, ShellInvocation


class TestParseCommand:
    """Test heredoc detection."""

    def test_heredoc_detected(self):
        parsed = parse_command("cat <<EOF > site/index.html\n<h1>Hi</h1>\nEOF")

        assert isinstance(parsed, FileWrite)
        assert parsed.path == "site/index.html"
        assert parsed.content == "<h1>Hi</h1>"

    def test_multiline_content_verbatim(self):
        """Content keeps indentation, blank lines and shell-looking text."""
        content = "body {\n  color: red;\n}\n\n/* $HOME `x` */"
        parsed = parse_command(f"cat <<EOF > site/style.css\n{content}\nEOF")

        assert isinstance(parsed, FileWrite)
        assert parsed.content == content

    def test_terminator_inside_content(self):
        """Only the final terminator line closes the block."""
        parsed = parse_command("cat <<EOF > notes.txt\nbefore\nEOF\nafter\nEOF")

        assert isinstance(parsed, FileWrite)
        assert parsed.content == "before\nEOF\nafter"

    def test_surrounding_whitespace_ignored(self):
        parsed = parse_command("  cat <<EOF > a.txt\nx\nEOF\n\n")

        assert isinstance(parsed, FileWrite)
        assert parsed.content == "x"

    def test_quoted_delimiter_and_path(self):
        parsed = parse_command("cat << 'HTML' > \"site/my page.html\"\n<p>x</p>\nHTML")

        assert isinstance(parsed, FileWrite)
        assert parsed.path == "site/my page.html"
        assert parsed.content == "<p>x</p>"

    def test_mismatched_terminator_is_shell(self):
        command = "cat <<EOF > a.txt\nx\nEND"
        assert parse_command(command) == ShellInvocation(text=command)

    def test_plain_commands_are_shell(self):
        for command in ["mkdir site", "cat site/index.html", "echo hi > site/a.txt", "ls -la"]:
            parsed = parse_command(command)
            assert isinstance(parsed, ShellInvocation)
            assert parsed.text == command

    def test_append_redirection_is_shell(self):
        command = "cat <<EOF >> a.txt\ntwo\nEOF"
        assert parse_command(command) == ShellInvocation(text=command)

    def test_tab_stripping_heredoc_is_shell(self):
        command = "cat <<-EOF > a.txt\n\tx\n\tEOF"
        assert parse_command(command) == ShellInvocation(text=command)

    def test_empty_path_still_file_write(self):
        """An empty target is still classified as a file write."""
        parsed = parse_command("cat <<EOF >   \nx\nEOF")

        assert isinstance(parsed, FileWrite)
        assert parsed.path == ""


class TestFileWrite:
    """Test heredoc execution."""

    def test_writes_exact_content(self, tmp_workspace):
        content = "<html>\n  <body>Hi</body>\n</html>\n"
        outcome = execute_command(
            f"cat <<EOF > site/index.html\n{content}\nEOF",
            work_dir=tmp_workspace,
        )

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.written_path == "site/index.html"
        assert (tmp_workspace / "site" / "index.html").read_bytes() == content.encode("utf-8")

    def test_creates_parent_directories(self, tmp_workspace):
        outcome = execute_command(
            "cat <<EOF > site/assets/js/app.js\nconsole.log(1);\nEOF",
            work_dir=tmp_workspace,
        )

        assert outcome.ok
        assert (tmp_workspace / "site" / "assets" / "js" / "app.js").is_file()

    def test_overwrites_existing_file(self, tmp_workspace):
        target = tmp_workspace / "a.txt"
        target.write_text("old content that is longer")

        execute_command("cat <<EOF > a.txt\nnew\nEOF", work_dir=tmp_workspace)

        assert target.read_text() == "new"

    def test_preserves_crlf(self, tmp_workspace):
        execute_command("cat <<EOF > a.txt\nline1\r\nline2\nEOF", work_dir=tmp_workspace)

        assert (tmp_workspace / "a.txt").read_bytes() == b"line1\r\nline2"

    def test_empty_path_fails_without_shell(self, tmp_workspace):
        """An empty target is a FileWriteError, never a shell fallback."""
        with patch("siteagent.executors.interpreter.execute_shell") as mock_shell:
            outcome = execute_command("cat <<EOF >  \nx\nEOF", work_dir=tmp_workspace)

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error_kind == "FileWriteError"
        mock_shell.assert_not_called()

    def test_io_failure_reported(self, tmp_workspace):
        """A file in place of a parent directory surfaces as FileWriteError."""
        (tmp_workspace / "blocker").write_text("not a directory")

        outcome = execute_command("cat <<EOF > blocker/a.txt\nx\nEOF", work_dir=tmp_workspace)

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error_kind == "FileWriteError"
        assert outcome.error

    def test_unencodable_content_leaves_target_intact(self, tmp_workspace):
        target = tmp_workspace / "a.txt"
        target.write_text("keep")

        outcome = execute_command("cat <<EOF > a.txt\nx\ud800y\nEOF", work_dir=tmp_workspace)

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error_kind == "FileWriteError"
        assert target.read_text() == "keep"

    def test_path_escape_rejected(self, tmp_workspace):
        outcome = execute_command(
            "cat <<EOF > ../evil.txt\nx\nEOF",
            work_dir=tmp_workspace,
            output_root=tmp_workspace / "site",
        )

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error_kind == "PathEscapeError"
        assert not (tmp_workspace.parent / "evil.txt").exists()

    def test_sibling_of_output_root_rejected(self, tmp_workspace):
        with pytest.raises(PathEscapeError):
            write_file(
                FileWrite(path="other/a.txt", content="x"),
                work_dir=tmp_workspace,
                output_root="site",
            )

    def test_path_inside_root_allowed(self, tmp_workspace):
        target = write_file(
            FileWrite(path=str(tmp_workspace / "site" / "a.txt"), content="x"),
            work_dir=tmp_workspace,
            output_root="site",
        )

        assert target.read_text() == "x"

    def test_path_escape_is_file_write_error(self):
        assert issubclass(PathEscapeError, FileWriteError)


class TestShellPassThrough:
    """Test delegation of non-heredoc commands."""

    def test_delegates_unmodified(self, tmp_workspace):
        with patch("siteagent.executors.interpreter.execute_shell", return_value="out\n") as mock_shell:
            outcome = execute_command("echo hi > site/a.txt", work_dir=tmp_workspace)

        assert mock_shell.call_args[0][0] == "echo hi > site/a.txt"
        assert outcome.ok
        assert outcome.output == "out\n"

    def test_matches_executor_output(self, tmp_workspace):
        outcome = execute_command("echo hello", work_dir=tmp_workspace)

        assert outcome.output == execute_shell("echo hello", work_dir=tmp_workspace)

    def test_command_error_becomes_failure(self, tmp_workspace):
        with patch(
            "siteagent.executors.interpreter.execute_shell",
            side_effect=CommandError("boom"),
        ):
            outcome = execute_command("make", work_dir=tmp_workspace)

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error_kind == "CommandError"
        assert outcome.error == "boom"

    def test_stderr_with_zero_exit_is_failure(self, tmp_workspace):
        outcome = execute_command("echo note >&2", work_dir=tmp_workspace)

        assert outcome.status == OutcomeStatus.FAILURE
        assert "note" in outcome.error

    def test_append_heredoc_appends(self, tmp_workspace):
        (tmp_workspace / "a.txt").write_text("one\n")

        outcome = execute_command("cat <<EOF >> a.txt\ntwo\nEOF", work_dir=tmp_workspace)

        assert outcome.ok
        assert (tmp_workspace / "a.txt").read_text() == "one\ntwo\n"
        assert sorted(p.name for p in tmp_workspace.iterdir()) == ["a.txt"]

    def test_unencodable_command_becomes_failure(self, tmp_workspace):
        outcome = execute_command("echo \ud800", work_dir=tmp_workspace)

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.error_kind == "CommandError"

    def test_mkdir_creates_directory(self, tmp_workspace):
        outcome = execute_command("mkdir site", work_dir=tmp_workspace)

        assert outcome.ok
        assert (tmp_workspace / "site").is_dir()


class TestCommandInterpreter:
    """Test the settings-bound interpreter."""

    def test_from_settings_restricts_to_output_root(self, settings):
        interpreter = CommandInterpreter.from_settings(settings)

        assert interpreter.output_root == settings.output_root
        assert interpreter("cat <<EOF > site/a.txt\nx\nEOF").ok
        assert interpreter("cat <<EOF > elsewhere.txt\nx\nEOF").error_kind == "PathEscapeError"

    def test_unrestricted_when_disabled(self, settings):
        settings = settings.model_copy(update={"restrict_writes": False})
        interpreter = CommandInterpreter.from_settings(settings)

        outcome = interpreter("cat <<EOF > elsewhere.txt\nx\nEOF")

        assert interpreter.output_root is None
        assert outcome.ok
        assert (Path(settings.work_dir) / "elsewhere.txt").read_text() == "x"
