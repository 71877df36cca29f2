"""Script to add worker expectation fields (skills, requisites, tracking) to a TaskDB JSON file."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskdb.services.enrichment_service import enrichment_service


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("file", help="path to a tasks.json document")
    args = parser.parse_args(argv)

    try:
        updated = enrichment_service.enrich_file(args.file)
    except (OSError, ValueError) as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    print(f"✓ Enriched {updated} field group(s) -> {args.file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
