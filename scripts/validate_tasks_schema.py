"""Script to validate project tasks.json files.

Usage:
    python scripts/validate_tasks_schema.py ai-career-roadmap
    python scripts/validate_tasks_schema.py --all
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskdb.services.maintenance_service import maintenance_service


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Validate TaskDB project files.")
    parser.add_argument("projects", nargs="*")
    parser.add_argument("--all", action="store_true", dest="all_projects", help="validate every project")
    args = parser.parse_args(argv)

    if not args.projects and not args.all_projects:
        parser.error("give one or more project ids, or --all")

    results = maintenance_service.validate_projects(args.projects, all_projects=args.all_projects)
    if not results:
        print("✗ No projects found", file=sys.stderr)
        return 1

    failed = 0
    for project_id, result in results.items():
        if result.is_valid:
            print(f"✓ {project_id}: valid ({len(result.warnings)} warning(s))")
        else:
            failed += 1
            print(f"✗ {project_id}: {len(result.errors)} error(s)")
            for error in result.errors:
                print(f"    - {error}")
        for warning in result.warnings:
            print(f"    ! {warning}")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
