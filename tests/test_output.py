"""Tests for the CLI output formatter."""

import io
import json

import pytest
from rich.console import Console

from ftpmirror.output import OutputFormatter
from ftpmirror.sync import OperationPlan, SyncPhase, SyncStatus
from ftpmirror.sync.scanner import FileEntry


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


def formatter(streams, **kwargs) -> OutputFormatter:
    stdout, stderr = streams
    return OutputFormatter(
        console=Console(file=stdout, width=120, highlight=False),
        err_console=Console(file=stderr, width=120, highlight=False),
        **kwargs,
    )


PLAN = OperationPlan(
    make_dirs=("/docs",),
    add_files=(FileEntry("/docs/a.txt", 2048, 0.0),),
    remove_files=(FileEntry("/old.txt", 1, 0.0),),
)


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_messages(self, streams):
        out = formatter(streams)
        out.info("hello")
        out.warning("careful")
        out.error("broken")
        assert "hello" in streams[0].getvalue()
        assert "Warning: careful" in streams[1].getvalue()
        assert "Error: broken" in streams[1].getvalue()

    def test_quiet_keeps_errors_only(self, streams):
        out = formatter(streams, quiet=True)
        out.info("hello")
        out.success("done")
        out.warning("careful")
        out.error("broken")
        assert streams[0].getvalue() == ""
        assert streams[1].getvalue().strip() == "Error: broken"

    def test_print_plan_table(self, streams):
        out = formatter(streams)
        out.print_plan(PLAN)
        text = streams[0].getvalue()
        assert "Sync plan" in text
        assert "make dirs" in text
        assert "Transfer size: 2.0 KB" in text
        assert "/docs/a.txt" not in text

    def test_print_plan_verbose_lists_entries(self, streams):
        out = formatter(streams)
        out.print_plan(PLAN, verbose=True)
        text = streams[0].getvalue()
        assert "add files: /docs/a.txt" in text
        assert "remove files: /old.txt" in text

    def test_print_empty_plan(self, streams):
        out = formatter(streams)
        out.print_plan(OperationPlan())
        assert "Already in sync" in streams[0].getvalue()

    def test_print_plan_json(self, streams):
        out = formatter(streams, json_output=True)
        out.print_plan(PLAN)
        data = json.loads(streams[0].getvalue())
        assert data == {
            "make_dirs": ["/docs"],
            "remove_dirs": [],
            "add_files": ["/docs/a.txt"],
            "update_files": [],
            "remove_files": ["/old.txt"],
        }

    def test_print_summary(self, streams):
        out = formatter(streams)
        out.print_summary(
            SyncStatus(
                change_count=4,
                local_file_count=3,
                local_total_size=3072,
                transferred_size=1024,
                phase=SyncPhase.DONE,
            )
        )
        text = streams[0].getvalue()
        assert "Local: 3 file(s), 3.0 KB" in text
        assert "Applied 4 change(s), transferred 1.0 KB" in text

    def test_print_summary_json(self, streams):
        out = formatter(streams, json_output=True)
        out.print_summary(SyncStatus(change_count=1, phase=SyncPhase.DONE))
        data = json.loads(streams[0].getvalue())
        assert data["phase"] == "done"
        assert data["changes"] == 1
        assert data["transferredSize"] == 0
