"""Tests for the interactive demo's non-interactive helpers."""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import demo
from demo import DEMO_STEPS, DemoSession


def _step(title):
    return next(step for step in DEMO_STEPS if step.title == title)


class TestDemoHelpers:

    def test_format_size(self):
        assert demo.format_size(512) == "512 B"
        assert demo.format_size(2048) == "2 KB"
        assert demo.format_size(3 * 1024 * 1024) == "3 MB"

    def test_format_json_truncates(self):
        formatted = demo.format_json(list(range(100)), max_lines=10)
        assert "lines hidden" in formatted
        assert len(formatted.split("\n")) == 11

    def test_curl_uses_spreadsheet_id(self):
        session = DemoSession(selected_file="book.xlsx", spreadsheet_id="abc123")
        command = demo.build_curl_command(_step("Get Grid"), session, {})
        assert command == f'curl -X GET "{demo.BASE_URL}/spreadsheets/abc123/data"'

    def test_curl_placeholder_before_upload(self):
        command = demo.build_curl_command(_step("Export PDF"), DemoSession(), {})
        assert "{spreadsheet_id}" in command
        assert "excel_export.pdf" in command

    def test_session_tracks_id_and_grid(self):
        session = DemoSession()
        demo.extract_session_data({"id": "abc", "message": "ok"}, session)
        demo.extract_session_data({"data": [["a", "b"]], "mergedCells": []}, session)
        assert session.spreadsheet_id == "abc"
        assert session.grid == [["a", "b"]]

    def test_edit_defaults_from_first_cell(self):
        session = DemoSession(grid=[["Region", "Q1"]])
        params = demo.get_default_params(_step("Edit Cell & Save"), session)
        assert params == {"row": 0, "column": 0, "value": "Region [EDITED]"}
