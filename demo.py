#!/usr/bin/env python3
"""
Spreadsheet Grid Editor Interactive Demo

A guided tour through the Spreadsheet API for developers.
Run with: python demo.py
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import requests
except ImportError:
    print("Missing 'requests' library. Install with: pip install requests")
    sys.exit(1)

try:
    from rich.console import Console
    from rich.panel import Panel
    from rich.table import Table
    from rich.syntax import Syntax
    from rich.prompt import Prompt, Confirm
    from rich.box import ROUNDED, DOUBLE, SIMPLE
except ImportError:
    print("Missing 'rich' library. Install with: pip install rich")
    sys.exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────

BASE_URL = os.getenv("DEMO_BASE_URL", "http://127.0.0.1:8000")
SAMPLES_DIR = Path(os.getenv("DEMO_SAMPLES_DIR", "data/samples"))
PREVIEW_ROWS = 15
console = Console()


# ─────────────────────────────────────────────────────────────────────────────
# Data Classes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class DemoStep:
    """A single step in the demo workflow."""
    title: str
    description: str
    method: str
    endpoint_template: str
    is_file_upload: bool = False
    is_file_download: bool = False
    is_cell_edit: bool = False  # GET /data, change one cell, POST /save
    success_message: str = "✓ Success!"
    next_hint: str = ""
    editable_params: list = field(default_factory=list)


@dataclass
class DemoSession:
    """Tracks the current demo session state."""
    selected_file: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    grid: list = field(default_factory=list)
    merged_cells: list = field(default_factory=list)
    last_response: Optional[dict] = None


# ─────────────────────────────────────────────────────────────────────────────
# Demo Steps Definition
# ─────────────────────────────────────────────────────────────────────────────

DEMO_STEPS = [
    DemoStep(
        title="Upload Spreadsheet",
        description="Upload an XLSX file and register it under a new spreadsheet id.",
        method="POST",
        endpoint_template="/spreadsheets/",
        is_file_upload=True,
        success_message="✓ Spreadsheet uploaded!",
        next_hint="Next: Fetch the first worksheet as a grid",
    ),
    DemoStep(
        title="Get Grid",
        description="Flatten the first worksheet into rows of strings plus its merged ranges.",
        method="GET",
        endpoint_template="/spreadsheets/{spreadsheet_id}/data",
        success_message="✓ Grid retrieved!",
        next_hint="Next: Edit a cell and save it back",
    ),
    DemoStep(
        title="Edit Cell & Save",
        description="Change one cell in the grid and write the whole grid back to the workbook.",
        method="POST",
        endpoint_template="/spreadsheets/{spreadsheet_id}/save",
        is_cell_edit=True,
        editable_params=["row", "column", "value"],
        success_message="✓ Grid saved!",
        next_hint="Next: Export the grid as a PDF table",
    ),
    DemoStep(
        title="Export PDF",
        description="Render the current grid as a paginated PDF table and download it.",
        method="GET",
        endpoint_template="/spreadsheets/{spreadsheet_id}/export-pdf",
        is_file_download=True,
        success_message="✓ PDF downloaded!",
        next_hint="Next: Inspect the stored workbook",
    ),
    DemoStep(
        title="Inspect Workbook",
        description="List the worksheets in the stored workbook with their dimensions.",
        method="GET",
        endpoint_template="/spreadsheets/{spreadsheet_id}/debug",
        success_message="✓ Workbook described!",
        next_hint="Next: Check overall server status",
    ),
    DemoStep(
        title="Server Status",
        description="Report server health and the files in the upload directory.",
        method="GET",
        endpoint_template="/status",
        success_message="✓ Status retrieved!",
    ),
]


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────

def clear_screen():
    """Clear the terminal screen."""
    os.system('cls' if os.name == 'nt' else 'clear')


def check_server() -> bool:
    """Check if the server is running."""
    try:
        response = requests.get(f"{BASE_URL}/status", timeout=3)
        return response.status_code == 200
    except requests.exceptions.RequestException:
        return False


def get_available_files() -> list[tuple[str, int]]:
    """XLSX files in the samples directory with their sizes, smallest first."""
    files = []
    if SAMPLES_DIR.exists():
        for f in SAMPLES_DIR.iterdir():
            if f.suffix.lower() == ".xlsx":
                files.append((f.name, f.stat().st_size))
    return sorted(files, key=lambda x: x[1])


def format_size(size_bytes: int) -> str:
    """Whole-unit size label (B, KB or MB)."""
    for unit in ("B", "KB"):
        if size_bytes < 1024:
            return f"{size_bytes} {unit}"
        size_bytes //= 1024
    return f"{size_bytes} MB"


def format_json(data: Any, max_lines: int = 30) -> str:
    """Pretty JSON, keeping only the head and tail of long documents."""
    lines = json.dumps(data, indent=2).splitlines()
    hidden = len(lines) - max_lines
    if hidden <= 0:
        return "\n".join(lines)
    keep = max_lines // 2
    marker = f"  ... ({hidden} lines hidden) ..."
    return "\n".join([*lines[:keep], marker, *lines[-keep:]])


def build_curl_command(step: DemoStep, session: DemoSession, params: dict) -> str:
    """Build the equivalent curl command for display."""
    endpoint = step.endpoint_template.format(spreadsheet_id=session.spreadsheet_id or "{spreadsheet_id}")
    url = f"{BASE_URL}{endpoint}"

    if step.is_file_upload:
        return f'curl -X POST "{url}" \\\n  -F "file=@{SAMPLES_DIR / (session.selected_file or "book.xlsx")}"'

    if step.is_file_download:
        return f'curl "{url}" --output excel_export.pdf'

    if step.is_cell_edit:
        return (
            f'# Step 1: Get the current grid\n'
            f'curl "{BASE_URL}/spreadsheets/{session.spreadsheet_id or "{spreadsheet_id}"}/data" -o grid.json\n\n'
            f'# Step 2: Edit grid.json (data[{params.get("row", 0)}][{params.get("column", 0)}])\n\n'
            f'# Step 3: Save the edited grid\n'
            f'curl -X POST "{url}" \\\n  -H "Content-Type: application/json" \\\n  -d @grid.json'
        )

    return f'curl -X {step.method} "{url}"'


def _response_data(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text[:500]}


def execute_step(step: DemoStep, session: DemoSession, params: dict) -> tuple[bool, Any, int]:
    """Execute an API call and return (success, response_data, status_code)."""
    endpoint = step.endpoint_template.format(spreadsheet_id=session.spreadsheet_id)
    url = f"{BASE_URL}{endpoint}"

    try:
        if step.is_cell_edit:
            get_response = requests.get(
                f"{BASE_URL}/spreadsheets/{session.spreadsheet_id}/data", timeout=30
            )
            if get_response.status_code != 200:
                return False, {"error": "Failed to fetch grid for editing"}, get_response.status_code

            payload = get_response.json()
            grid = payload.get("data", [])
            row, column = int(params.get("row", 0)), int(params.get("column", 0))
            if not (0 <= row < len(grid) and 0 <= column < len(grid[row])):
                return False, {"error": f"Cell ({row}, {column}) is outside the grid"}, 400

            old_value = grid[row][column]
            grid[row][column] = params.get("value", "")
            response = requests.post(url, json=payload, timeout=60)

            result = {"row": row, "column": column, "old_value": old_value, "new_value": grid[row][column]}
            result.update(_response_data(response))
            return response.status_code < 400, result, response.status_code

        if step.is_file_upload:
            file_path = SAMPLES_DIR / session.selected_file
            with open(file_path, "rb") as f:
                response = requests.post(url, files={"file": (file_path.name, f)}, timeout=60)
        elif step.is_file_download:
            response = requests.get(url, timeout=60)
            if response.status_code == 200:
                output_name = f"{Path(session.selected_file).stem}_export.pdf"
                Path(output_name).write_bytes(response.content)
                return True, {"message": f"File saved as {output_name}", "size": len(response.content)}, 200
        elif step.method == "GET":
            response = requests.get(url, timeout=30)
        else:
            response = requests.post(url, timeout=60)

        return response.status_code < 400, _response_data(response), response.status_code

    except requests.exceptions.ConnectionError:
        return False, {"error": "Connection failed. Is the server running?"}, 0
    except requests.exceptions.Timeout:
        return False, {"error": "Request timed out"}, 0


# ─────────────────────────────────────────────────────────────────────────────
# UI Components
# ─────────────────────────────────────────────────────────────────────────────

def show_header():
    """Display the demo header."""
    console.print()
    console.print(Panel(
        "[bold cyan]Spreadsheet Grid Editor Interactive Demo[/bold cyan]\n"
        "[dim]Learn how to use the Spreadsheet API step by step[/dim]",
        box=DOUBLE,
        border_style="cyan",
        padding=(1, 2),
    ))


def show_server_status():
    """Check and display server status."""
    console.print("\n[dim]Checking server status...[/dim]")
    if check_server():
        console.print(f"[green]✓ Server is running at {BASE_URL}[/green]\n")
        return True
    console.print(f"[red]✗ Server is not running at {BASE_URL}[/red]")
    console.print("\n[yellow]Start the server with:[/yellow]")
    console.print(Panel("uvicorn main:app --reload --port 8000", title="Command", border_style="yellow"))
    return False


def show_file_selection() -> Optional[str]:
    """Display file selection menu and return selected filename."""
    files = get_available_files()

    if not files:
        console.print(f"[red]No XLSX files found in {SAMPLES_DIR}/[/red]")
        return None

    table = Table(title=f"Workbooks in {SAMPLES_DIR}", box=ROUNDED, border_style="blue")
    table.add_column("No.", style="cyan", justify="right")
    table.add_column("Workbook")
    table.add_column("Size", style="dim", justify="right")
    for number, (name, size) in enumerate(files, start=1):
        table.add_row(str(number), name, format_size(size))
    console.print(table, "")

    choices = [str(n) for n in range(1, len(files) + 1)] + ["q"]
    choice = Prompt.ask("Pick a workbook ([red]q[/red] quits)", choices=choices, default="1")
    if choice == "q":
        return None
    return files[int(choice) - 1][0]


def show_grid(grid: list, merged_cells: list):
    """Render the first rows of a grid as a table."""
    if not grid:
        return
    table = Table(box=SIMPLE, show_header=True, header_style="bold")
    table.add_column("#", style="dim", justify="right")
    for col in range(len(grid[0])):
        table.add_column(str(col))
    for index, row in enumerate(grid[:PREVIEW_ROWS]):
        table.add_row(str(index), *row)
    console.print(table)
    if len(grid) > PREVIEW_ROWS:
        console.print(f"[dim]... {len(grid) - PREVIEW_ROWS} more rows[/dim]")
    if merged_cells:
        spans = ", ".join(f"({m['top']},{m['left']})-({m['bottom']},{m['right']})" for m in merged_cells)
        console.print(f"[dim]Merged ranges: {spans}[/dim]")


def show_step_detail(step: DemoStep, step_num: int, total: int, session: DemoSession, params: dict):
    """Display a single step with its command."""
    console.print()
    console.print(Panel(
        f"[bold]{step.title}[/bold]\n\n{step.description}",
        title=f"Step {step_num}/{total}",
        border_style="green",
    ))
    console.print("\n[bold]Command:[/bold]")
    console.print(Syntax(build_curl_command(step, session, params), "bash", theme="monokai", word_wrap=True))
    if step.editable_params:
        console.print("\n[bold]Parameters:[/bold]")
        for name in step.editable_params:
            console.print(f"  {name} = [cyan]{params.get(name)!r}[/cyan]")


def edit_params(step: DemoStep, current_params: dict) -> dict:
    """Let the user change the allowed parameters of a step."""
    params = dict(current_params)
    for name in step.editable_params:
        params[name] = Prompt.ask(f"  {name}", default=str(params.get(name, "")))
    return params


def show_response(success: bool, data: Any, status_code: int, step: DemoStep):
    """Display the API response."""
    if success:
        console.print(f"\n[green]Response ({status_code} OK):[/green]")
    else:
        console.print(f"\n[red]Response ({status_code} Error):[/red]")

    if success and isinstance(data, dict) and "data" in data:
        show_grid(data["data"], data.get("mergedCells", []))
    else:
        console.print(Syntax(format_json(data), "json", theme="monokai", line_numbers=False, word_wrap=True))

    if success:
        console.print(f"\n[green]{step.success_message}[/green]")
        if step.next_hint:
            console.print(f"[dim]{step.next_hint}[/dim]")
    else:
        console.print("\n[yellow]Troubleshooting:[/yellow]")
        if status_code == 404:
            console.print("  • Spreadsheet not found - did you upload it first?")
        elif status_code == 0:
            console.print("  • Server connection failed - is the server running?")
        else:
            console.print("  • Check the error message above for details")


def extract_session_data(data: Any, session: DemoSession):
    """Pull ids and grid state from a response into the session."""
    if not isinstance(data, dict):
        return
    if "id" in data:
        session.spreadsheet_id = data["id"]
    if "data" in data:
        session.grid = data["data"]
        session.merged_cells = data.get("mergedCells", [])
    session.last_response = data


def get_default_params(step: DemoStep, session: DemoSession) -> dict:
    """Default parameters for a step based on session context."""
    if not step.is_cell_edit:
        return {}
    if session.grid and session.grid[0]:
        original = session.grid[0][0]
        return {"row": 0, "column": 0, "value": f"{original} [EDITED]".strip()}
    return {"row": 0, "column": 0, "value": "[EDITED BY DEMO]"}


# ─────────────────────────────────────────────────────────────────────────────
# Main Demo Flow (Linear Wizard)
# ─────────────────────────────────────────────────────────────────────────────

def run_linear_workflow(session: DemoSession):
    """Walk through DEMO_STEPS in order.

    Each step shows its command and can be run, edited, skipped or revisited.
    """
    step_index = 0
    total_steps = len(DEMO_STEPS)

    while 0 <= step_index < total_steps:
        step = DEMO_STEPS[step_index]
        params = get_default_params(step, session)

        while True:
            clear_screen()
            show_header()
            console.print(
                f"\n[dim]File: [cyan]{session.selected_file}[/cyan] | "
                f"Spreadsheet ID: [cyan]{session.spreadsheet_id or 'Not uploaded yet'}[/cyan] | "
                f"Step {step_index + 1}/{total_steps}[/dim]"
            )
            show_step_detail(step, step_index + 1, total_steps, session, params)

            choices = "[cyan]r[/cyan]un | [cyan]n[/cyan]ext"
            if step.editable_params:
                choices += " | [cyan]e[/cyan]dit"
            if step_index > 0:
                choices += " | [cyan]b[/cyan]ack"
            action = Prompt.ask(f"\n{choices} | [red]q[/red]uit", default="r").lower()

            if action == "q":
                return
            if action == "b" and step_index > 0:
                step_index -= 1
                break
            if action == "n":
                step_index += 1
                break
            if action == "e" and step.editable_params:
                params = edit_params(step, params)
                continue
            if action != "r":
                continue

            console.print("\n[dim]Executing...[/dim] ⏳")
            success, data, status_code = execute_step(step, session, params)
            if success:
                extract_session_data(data, session)
            show_response(success, data, status_code, step)

            if Confirm.ask("\nContinue to the next step?", default=True):
                step_index += 1
                break


def main():
    """Main entry point: choose file, then run linear wizard."""
    clear_screen()
    show_header()

    if not show_server_status():
        if not Confirm.ask("\nContinue anyway?", default=False):
            console.print("[dim]Goodbye![/dim]")
            return

    selected_file = show_file_selection()
    if not selected_file:
        console.print("[dim]Goodbye![/dim]")
        return

    session = DemoSession(selected_file=selected_file)
    run_linear_workflow(session)

    console.print("\n[dim]Demo finished. You can run it again with another file any time.[/dim]")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted. Goodbye![/dim]")
