"""Script to rebuild a project's tasks.csv from its tasks.json."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskdb.config import settings
from taskdb.services.maintenance_service import maintenance_service


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("project", nargs="?", default=settings.DEFAULT_PROJECT_ID)
    args = parser.parse_args(argv)

    try:
        csv_path, rows = maintenance_service.regenerate_csv(args.project)
    except (OSError, ValueError) as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    print(f"✓ Regenerated tasks.csv with {rows} rows -> {csv_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
