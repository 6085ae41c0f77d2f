"""
Write the MeatDesk OpenAPI document.

The app is built with a throwaway database and data directory so the
document can be generated without touching local state.

Usage:
    python scripts/generate_openapi.py                  # Print to stdout
    python scripts/generate_openapi.py --output api.json  # Save to file
"""

import argparse
import json
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.server import create_app
from core.config import Settings


def build_openapi_document() -> dict:
    with tempfile.TemporaryDirectory() as tmp:
        settings = Settings(db_path=Path(tmp) / "openapi.db", data_dir=Path(tmp))
        return create_app(settings=settings).openapi()


def main():
    parser = argparse.ArgumentParser(description="Generate the OpenAPI document")
    parser.add_argument("--output", "-o", help="Output file path (default: stdout)")
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print path and schema counts after writing",
    )
    args = parser.parse_args()

    document = build_openapi_document()
    text = json.dumps(document, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"OpenAPI document written to: {args.output}")
    else:
        print(text)

    if args.summary:
        paths = document.get("paths", {})
        schemas = document.get("components", {}).get("schemas", {})
        print(f"\n  Title: {document['info']['title']} {document['info']['version']}")
        print(f"  Paths: {len(paths)}")
        print(f"  Endpoints: {sum(len(methods) for methods in paths.values())}")
        print(f"  Schemas: {len(schemas)}")


if __name__ == "__main__":
    main()
