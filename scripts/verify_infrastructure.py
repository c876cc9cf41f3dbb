#!/usr/bin/env python3
"""
Infrastructure verification script for IRP.

Checks that PostgreSQL and the S3-compatible blob store are running and
accessible with the configured credentials.
"""

import asyncio
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend" / "src"))

from irp.config import get_settings  # noqa: E402


class ServiceStatus(Enum):
    OK = "OK"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


@dataclass
class ServiceCheck:
    name: str
    status: ServiceStatus
    message: str


async def check_postgres() -> ServiceCheck:
    """Check PostgreSQL connectivity."""
    settings = get_settings()
    try:
        import asyncpg

        conn = await asyncpg.connect(
            host=settings.postgres_host,
            port=settings.postgres_port,
            user=settings.postgres_user,
            password=settings.postgres_password,
            database=settings.postgres_db,
        )
        version = await conn.fetchval("SELECT version()")
        await conn.close()
        return ServiceCheck("PostgreSQL", ServiceStatus.OK, f"Connected - {version[:50]}...")
    except ImportError:
        return ServiceCheck("PostgreSQL", ServiceStatus.UNKNOWN, "asyncpg not installed")
    except Exception as e:
        return ServiceCheck("PostgreSQL", ServiceStatus.ERROR, str(e))


async def check_blob_store() -> ServiceCheck:
    """Check the S3-compatible blob store and the report bucket."""
    settings = get_settings()
    try:
        import boto3
        from botocore.config import Config

        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(signature_version="s3v4"),
        )
        buckets = await asyncio.to_thread(client.list_buckets)
        bucket_names = [b["Name"] for b in buckets.get("Buckets", [])]
        if settings.report_bucket not in bucket_names:
            return ServiceCheck(
                "Blob store",
                ServiceStatus.ERROR,
                f"Bucket '{settings.report_bucket}' missing - run: irp dev ensure-bucket",
            )
        return ServiceCheck(
            "Blob store",
            ServiceStatus.OK,
            f"Connected - Buckets: {', '.join(bucket_names)}",
        )
    except ImportError:
        return ServiceCheck("Blob store", ServiceStatus.UNKNOWN, "boto3 not installed")
    except Exception as e:
        return ServiceCheck("Blob store", ServiceStatus.ERROR, str(e))


def print_result(check: ServiceCheck) -> None:
    """Print a service check result."""
    status_symbols = {
        ServiceStatus.OK: "\033[92m[OK]\033[0m",
        ServiceStatus.ERROR: "\033[91m[FAIL]\033[0m",
        ServiceStatus.UNKNOWN: "\033[93m[?]\033[0m",
    }
    symbol = status_symbols[check.status]
    print(f"  {symbol} {check.name}: {check.message}")


async def main() -> int:
    """Run all infrastructure checks."""
    print("\n" + "=" * 60)
    print("IRP Infrastructure Verification")
    print("=" * 60 + "\n")

    print("Checking services...\n")

    checks = await asyncio.gather(
        check_postgres(),
        check_blob_store(),
    )

    for check in checks:
        print_result(check)

    print()

    ok_count = sum(1 for c in checks if c.status == ServiceStatus.OK)
    error_count = sum(1 for c in checks if c.status == ServiceStatus.ERROR)

    if error_count > 0:
        print(f"\033[91mResult: {error_count} service(s) not available\033[0m\n")
        return 1
    elif ok_count == len(checks):
        print(f"\033[92mResult: All {ok_count} services operational\033[0m\n")
        return 0
    else:
        print(f"\033[93mResult: {ok_count}/{len(checks)} services verified\033[0m\n")
        return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
