#!/usr/bin/env python3
"""
Development environment setup script for IRP.

This script:
1. Creates the report attachment bucket
2. Verifies infrastructure is running
3. Runs database migrations
"""

import asyncio
import subprocess
import sys
from pathlib import Path


async def run_ensure_bucket() -> bool:
    """Create the report bucket if it is missing."""
    print("\n[1/3] Ensuring report bucket...")
    result = subprocess.run(
        [sys.executable, "-m", "irp.cli", "dev", "ensure-bucket"],
        cwd=Path(__file__).parent.parent / "backend" / "src",
    )
    return result.returncode == 0


async def run_verify() -> bool:
    """Run infrastructure verification."""
    print("\n[2/3] Verifying infrastructure...")
    result = subprocess.run(
        [sys.executable, "verify_infrastructure.py"],
        cwd=Path(__file__).parent,
    )
    return result.returncode == 0


async def run_migrations() -> bool:
    """Run Alembic migrations."""
    print("\n[3/3] Running database migrations...")
    backend_dir = Path(__file__).parent.parent / "backend"

    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        cwd=backend_dir,
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        print("  \033[92m[OK] Migrations complete\033[0m")
        return True
    print(f"  \033[91m[FAIL] Migration error: {result.stderr}\033[0m")
    return False


async def main() -> int:
    """Run full development setup."""
    print("=" * 60)
    print("IRP Development Environment Setup")
    print("=" * 60)

    if not await run_ensure_bucket():
        print("\n\033[91mSetup failed: Could not reach the blob store\033[0m")
        return 1

    if not await run_verify():
        print("\n\033[91mSetup failed: Infrastructure not available\033[0m")
        return 1

    if not await run_migrations():
        print("\n\033[91mSetup failed: Migration error\033[0m")
        return 1

    print("\n" + "=" * 60)
    print("\033[92mDevelopment environment ready!\033[0m")
    print("=" * 60)
    print("\nStart the backend:")
    print("  cd backend/src && uvicorn main:app --reload --port 3000")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
