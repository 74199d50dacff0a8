"""
CLI Entry Point: Generate a session plan PDF

Input is a JSON file:
    {
        "title": "Session 2 - Biscuit",
        "header_text": "Raising My Rescue",
        "blocks": [{"header": "<p>Loose lead</p>", "body": "<p>...</p>"}],
        "note": "<p>Reminder: ...</p>"
    }

Usage:
    python scripts/generate_session_plan.py plan.json --output plan.pdf
    python scripts/generate_session_plan.py plan.json --layout-only
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from plan_layout.budget import PageGeometry
from plan_layout.common.config import get_settings
from plan_layout.common.error_handling import LayoutError
from plan_layout.common.logger import set_global_debug_mode, setup_logging
from plan_layout.models import TrailingNote, blocks_from_raw
from plan_pdf_service.generator import GenerationRequest, compute_layout, generate_document


def load_plan(plan_path: str) -> dict:
    """Load the session plan JSON file."""
    path = Path(plan_path)
    if not path.exists():
        raise FileNotFoundError(f"Session plan not found: {plan_path}")

    with open(path, 'r') as f:
        plan = json.load(f)

    if not isinstance(plan, dict):
        raise ValueError("Session plan must be a JSON object")
    blocks = plan.get("blocks", [])
    if not isinstance(blocks, list) or not all(isinstance(block, dict) for block in blocks):
        raise ValueError("'blocks' must be a list of {header, body} objects")
    return plan


def build_request(plan: dict) -> GenerationRequest:
    return GenerationRequest(
        blocks=blocks_from_raw(plan.get("blocks", [])),
        note=TrailingNote.from_raw(plan.get("note")),
        geometry=PageGeometry.from_settings(get_settings()),
        title=plan.get("title") or "Session Plan",
        header_text=plan.get("header_text", ""),
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Paginate and render a session plan to PDF")
    parser.add_argument("plan", help="Path to the session plan JSON file")
    parser.add_argument("--output", "-o", help="PDF output path (default: <title>.pdf)")
    parser.add_argument("--layout-only", action="store_true", help="Print the page layout as JSON and exit")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging("DEBUG" if args.debug else settings.log_level, settings.log_format)
    set_global_debug_mode(args.debug)

    try:
        request = build_request(load_plan(args.plan))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.layout_only:
            layout = compute_layout(request)
            print(json.dumps(layout.to_dict(), indent=2))
            return 0

        document = generate_document(request)
    except LayoutError as e:
        print(f"Generation failed: {e}", file=sys.stderr)
        return 2

    output = Path(args.output or document.filename)
    output.write_bytes(document.pdf_bytes)
    print(f"Wrote {output} ({document.layout.page_count} pages)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
