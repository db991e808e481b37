#!/usr/bin/env python3
"""Validate service log backup files against the schema."""
import sys
from pathlib import Path

from carlog import BackupError, load_backup, validate_backup


def validate_backup_file(filepath: Path) -> list[str]:
    """Validate a single backup file. Returns list of errors."""
    try:
        payload = load_backup(filepath)
    except BackupError as e:
        return [str(e)]
    return validate_backup(payload)


def main(argv=None):
    """Validate every backup file given on the command line."""
    paths = [Path(p) for p in (sys.argv[1:] if argv is None else argv)]
    if not paths:
        print("Usage: validate_backup.py FILE [FILE ...]")
        return 1

    all_valid = True
    for filepath in paths:
        errors = validate_backup_file(filepath)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
