"""Unit tests for cli.output module."""

import io

import pytest
from rich.console import Console

from src.cli.output import OutputHandler, describe_error
from src.portal_client.errors import UnhandledError
from src.sync_engine.models import OperationSummary


def captured_handler(verbosity=2):
    handler = OutputHandler(verbosity=verbosity, no_color=True)
    handler.console = Console(file=io.StringIO(), no_color=True, width=200, highlight=False)
    return handler


def rendered(handler):
    return handler.console.file.getvalue()


class TestMarkupEscaping:
    """Interpolated text is printed literally, never parsed as Rich markup."""

    @pytest.mark.parametrize("method", ["success", "error", "warning", "info", "debug", "print"])
    def test_bracketed_text_is_kept(self, method):
        handler = captured_handler()

        getattr(handler, method)("Uploaded [bold]media/[red]logo.png[/red]")

        assert "Uploaded [bold]media/[red]logo.png[/red]" in rendered(handler)

    def test_failure_keeps_bracketed_error_text(self):
        handler = captured_handler()
        error = UnhandledError(409, "Conflict [etag]", "/contentTypes/page")

        handler.failure("Generate", error)

        assert "Generate failed: Request failed: 409 Conflict [etag]" in rendered(handler)


class TestVerbosity:
    """Test cases for verbosity gating."""

    def test_info_and_debug_hidden_at_zero(self):
        handler = captured_handler(verbosity=0)

        handler.info("info line")
        handler.debug("debug line")

        assert rendered(handler) == ""


class TestDescribeError:
    """Test cases for describe_error."""

    def test_notes_rendered_outermost_first(self):
        error = UnhandledError(500, "Internal Server Error", "/contentTypes")
        error.add_note("Unable to fetch content types.")
        error.add_note("Unable to complete export.")

        assert describe_error(error) == (
            "Unable to complete export. Unable to fetch content types. "
            "Request failed: 500 Internal Server Error"
        )


class TestPrintSummary:
    """Test cases for print_summary."""

    def test_empty_summary_reports_nothing_to_do(self):
        handler = captured_handler()

        handler.print_summary("Capture", OperationSummary())

        assert "Nothing to do" in rendered(handler)
