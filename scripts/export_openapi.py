#!/usr/bin/env python3
"""Export FastAPI's auto-generated OpenAPI spec as YAML files.

This script:
1. Imports the FastAPI app and extracts the OpenAPI schema
2. Splits paths by tag into separate files
3. Writes a bundled openapi.yaml and openapi.json

Usage:
    python scripts/export_openapi.py [--output-dir backend/openapi]
"""

import argparse
import json
import re
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

import yaml

# Add backend/src to path for imports
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
BACKEND_SRC = PROJECT_ROOT / "backend" / "src"
sys.path.insert(0, str(BACKEND_SRC))

TAG_DESCRIPTIONS = {
    "Reports": "Report submission, listing, assignment and review.",
    "Moderators": "Profile of the authenticated moderator.",
    "Health": "Health check endpoints for monitoring service status and readiness.",
    "Root": "API information.",
}


def get_openapi_schema() -> dict[str, Any]:
    """Get OpenAPI schema from FastAPI app."""
    from irp.app import create_app

    return create_app().openapi()


def tag_to_filename(tag: str) -> str:
    """Convert a tag name to a file name."""
    return re.sub(r"[^a-z0-9]+", "-", tag.lower()).strip("-") or "untagged"


def split_paths_by_tag(openapi: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Split paths into separate dictionaries by primary tag."""
    paths_by_tag: dict[str, dict[str, Any]] = defaultdict(dict)

    for path, methods in openapi.get("paths", {}).items():
        primary_tag = "Untagged"
        for method, spec in methods.items():
            if method.startswith("x-"):
                continue
            tags = spec.get("tags", [])
            if tags:
                primary_tag = tags[0]
                break
        paths_by_tag[tag_to_filename(primary_tag)][path] = methods

    return paths_by_tag


def write_yaml_file(path: Path, data: dict[str, Any], title: str) -> None:
    """Write a YAML file with a header comment."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"# {title}\n")
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
    print(f"  Created: {path}")


def export_openapi(output_dir: Path) -> None:
    """Export the OpenAPI schema into ``output_dir``."""
    print("=" * 60)
    print("IRP OpenAPI Export")
    print("=" * 60)

    print("\n1. Generating OpenAPI schema...")
    openapi = get_openapi_schema()

    print("\n2. Writing path modules...")
    paths_by_tag = split_paths_by_tag(openapi)
    for filename, paths in paths_by_tag.items():
        write_yaml_file(output_dir / "paths" / f"{filename}.yaml", paths, f"{filename} paths")

    print("\n3. Writing schemas...")
    schemas = openapi.get("components", {}).get("schemas", {})
    write_yaml_file(output_dir / "components" / "schemas.yaml", schemas, "Schemas")

    print("\n4. Writing bundled spec...")
    tags = sorted(
        {
            tag
            for methods in openapi.get("paths", {}).values()
            for method, spec in methods.items()
            if not method.startswith("x-")
            for tag in spec.get("tags", [])
        }
    )
    openapi["tags"] = [
        {"name": tag, "description": TAG_DESCRIPTIONS.get(tag, f"{tag} operations")}
        for tag in tags
    ]
    write_yaml_file(output_dir / "openapi.yaml", openapi, "IRP API - OpenAPI Specification")

    json_path = output_dir / "openapi.json"
    json_path.write_text(json.dumps(openapi, indent=2), encoding="utf-8")
    print(f"  Created: {json_path}")

    print("\n" + "=" * 60)
    print("Export complete!")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Export FastAPI OpenAPI spec to YAML files")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=PROJECT_ROOT / "backend" / "openapi",
        help="Output directory for OpenAPI files (default: backend/openapi)",
    )

    args = parser.parse_args()
    export_openapi(args.output_dir)


if __name__ == "__main__":
    main()
