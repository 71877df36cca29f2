"""Script to snapshot a legacy root tasks.json into the task store history folder."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskdb.services.maintenance_service import maintenance_service


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("legacy", nargs="?", default="tasks.json", help="legacy tasks.json (default: ./tasks.json)")
    parser.add_argument("--history-dir", default=None)
    args = parser.parse_args(argv)

    try:
        written = maintenance_service.archive_legacy(args.legacy, args.history_dir)
    except OSError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    print(f"✓ Archived legacy tasks.json to: {written[0]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
