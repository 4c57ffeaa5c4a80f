"""Run the transfer server from the command line: ``python -m fastlane``"""

import argparse
import json
from pathlib import Path
from typing import List, Optional

from fastlane.config import Settings
from fastlane.launcher import start_server


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Share files with devices on the local network")
    parser.add_argument("--host", help="Bind address (default from FASTLANE_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port, 0 for an ephemeral port")
    parser.add_argument("--upload-dir", type=Path, help="Directory that stores uploaded files")
    parser.add_argument(
        "--require-approval",
        action="store_true",
        default=None,
        help="Only approved devices may reach files; only the host may approve or delete",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "host": args.host,
        "port": args.port,
        "upload_dir": args.upload_dir,
        "require_approval": args.require_approval,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    handle = start_server(build_settings(args))
    print(json.dumps(handle.info.to_dict()), flush=True)

    try:
        handle.wait()
    except KeyboardInterrupt:
        handle.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
