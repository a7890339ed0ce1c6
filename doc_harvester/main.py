"""CLI entry point."""

import argparse
import asyncio
import json
import os
import sys

from .config import load_config
from .errors import HarvestError, NoFilesDownloaded
from .logger import setup_logger
from .models import RunSummary
from .pipeline import HarvestRequest, create_pipeline


async def run_harvest(config, request: HarvestRequest):
    pipeline = create_pipeline(config)
    try:
        return await pipeline.run(request)
    finally:
        await pipeline.aclose()


def show_summary(summary: RunSummary):
    """Print the per-document outcome table."""
    print("\n" + "=" * 78)
    print("  DOWNLOAD SUMMARY")
    print("=" * 78)
    print(f"{'Status':<8} {'Size':>10}  {'File'}")
    print("-" * 78)

    for entry in summary.log:
        size = _format_bytes(entry.size) if entry.size is not None else ""
        print(f"{entry.status:<8} {size:>10}  {entry.file_name}")
        for err in entry.errors or []:
            print(f"{'':<8} {'':>10}    - {err}")

    print("-" * 78)
    print(f"Succeeded: {summary.success_count}  Failed: {summary.failure_count}  "
          f"Total: {summary.total_requested}")
    print()


def _format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    elif n < 1024 ** 2:
        return f"{n / 1024:.1f} KB"
    elif n < 1024 ** 3:
        return f"{n / 1024 ** 2:.1f} MB"
    else:
        return f"{n / 1024 ** 3:.2f} GB"


def _load_documents(path: str) -> list:
    with open(path) as f:
        data = json.load(f)
    # Accept either a bare list or an extraction-service results payload.
    if isinstance(data, dict):
        data = data.get("documents", [])
    return data


def main(argv=None):
    parser = argparse.ArgumentParser(description="Download documents into a single ZIP archive")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--documents", type=str,
                        help="JSON file with a list of document descriptors")
    source.add_argument("--url", type=str,
                        help="Website or portal URL to resolve into documents")
    parser.add_argument("--job-id", type=str, default=None,
                        help="Job identifier used in the archive name")
    parser.add_argument("--output", type=str, default=".",
                        help="Directory to write the archive to")
    parser.add_argument("--config", type=str, default="config.yaml",
                        help="Path to config file")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    logger = setup_logger(config.log_dir)

    request = HarvestRequest(
        documents=_load_documents(args.documents) if args.documents else None,
        job_id=args.job_id,
        possible_url=args.url or "",
    )

    try:
        result = asyncio.run(run_harvest(config, request))
    except NoFilesDownloaded as e:
        show_summary(e.summary)
        logger.error(f"[{e.code}] {e.message}")
        return 1
    except HarvestError as e:
        logger.error(f"[{e.code}] {e.message}" + (f": {e.detail}" if e.detail else ""))
        return 1

    os.makedirs(args.output, exist_ok=True)
    out_path = os.path.join(args.output, result.file_name)
    with open(out_path, "wb") as f:
        f.write(result.archive)

    show_summary(result.summary)
    print(f"Archive written to {out_path} ({_format_bytes(len(result.archive))})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
