#!/usr/bin/env python3
"""Print the effective storage configuration and the Redis connection mode."""
import argparse
import os
import sys
from pathlib import Path

# Make the project importable when run from a checkout
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from multipart_storage.config import settings, storage_config
from multipart_storage.core.config import ENV_PREFIX, config_manager
from multipart_storage.services.delay_job import StorageDelayJob
from multipart_storage.services.redis_service import DEFAULT_REDIS_URL


def check_storage_config(export_format: str = ""):
    print("=" * 60)
    print("Storage configuration check")
    print("=" * 60)

    print("\n1. Config file:")
    config_file = os.getenv(f"{ENV_PREFIX}CONFIG_FILE")
    if config_file:
        state = "found" if Path(config_file).exists() else "missing"
        print(f"   {ENV_PREFIX}CONFIG_FILE: {config_file} ({state})")
    else:
        print(f"   {ENV_PREFIX}CONFIG_FILE not set, using environment and .env files")

    print("\n2. Directories:")
    for label, path in (
        ("upload", storage_config.upload_path),
        ("cdn root", storage_config.root_path),
        ("download", storage_config.download_path),
    ):
        state = "exists" if Path(path).is_dir() else "will be created on demand"
        print(f"   {label:<10} {path} ({state})")

    print("\n3. Delay job:")
    job = StorageDelayJob(config=storage_config)
    print(f"   retention window: {storage_config.delay_delete_duration!r} -> {job.validity()}")
    print(f"   poll interval:    {storage_config.delay_job_interval}s")
    print(f"   queue key:        {job.queue}")

    print("\n4. Validation:")
    print(f"   single upload max size: {storage_config.upload_max_size} bytes")
    print(f"   accepted suffixes:      {storage_config.upload_accept_suffixes}")
    print(f"   chunk size check:       {storage_config.check_size_enabled} (max {storage_config.check_size_max} bytes)")
    print(f"   chunk content check:    {storage_config.check_content_enabled}")

    print("\n5. Redis connection mode:")
    redis_url_value = settings.redis_url.strip() if settings.redis_url else ""
    if redis_url_value and redis_url_value != DEFAULT_REDIS_URL:
        print(f"   URL: {redis_url_value.split('@')[-1]}")
    else:
        print(f"   host/port: {settings.redis_host}:{settings.redis_port} db {settings.redis_db}")
        print(f"   password: {'set' if settings.redis_password else 'not set'}")

    if export_format:
        print(f"\n6. Effective configuration ({export_format}):")
        print(config_manager.export_config(export_format))

    print("\n" + "=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--export", choices=["yaml", "json", "env"], default="",
                        help="also dump the effective configuration")
    args = parser.parse_args()

    try:
        check_storage_config(args.export)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
