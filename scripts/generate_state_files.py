"""Script to rebuild a project's state/ projections from its tasks.json."""
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
        state_dir, total = maintenance_service.regenerate_state(args.project)
    except (OSError, ValueError) as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    print(f"✓ Generated state files in: {state_dir}")
    print(f"  Total tasks: {total}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
