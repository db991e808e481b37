"""Backup file reading, writing and validation."""

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import Draft7Validator

from .errors import BackupError

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"
YAML_SUFFIXES = (".yaml", ".yml")

_schema: Optional[Dict[str, Any]] = None


def load_schema() -> Dict[str, Any]:
    """Load the backup JSON schema from schema.yaml."""
    global _schema
    if _schema is None:
        with open(SCHEMA_PATH, encoding="utf-8") as f:
            _schema = yaml.safe_load(f)
    return _schema


def backup_filename(today: Optional[date] = None) -> str:
    """Default export file name, e.g. cars-service-log-backup-2024-05-01.json."""
    today = today or date.today()
    return f"cars-service-log-backup-{today.isoformat()}.json"


def load_backup(filename: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a backup file: YAML for .yaml/.yml files, JSON otherwise.

    Raises BackupError when the file is unreadable, unparsable, or does not
    contain a mapping.
    """
    path = Path(filename)
    try:
        with open(path, encoding="utf-8") as fp:
            if path.suffix.lower() in YAML_SUFFIXES:
                # YAML dates become plain strings, as they would be in JSON
                data = json.loads(json.dumps(yaml.safe_load(fp), default=str))
            else:
                data = json.load(fp)
    except OSError as e:
        raise BackupError(f"Cannot read {filename}: {e}") from e
    except (yaml.YAMLError, ValueError) as e:
        raise BackupError(f"Cannot parse {filename}: {e}") from e
    if not isinstance(data, dict):
        raise BackupError(f"{filename} does not contain a backup object")
    return data


def save_backup(filename: Union[str, Path], snapshot: Dict[str, Any]) -> None:
    """Write a snapshot as JSON, or YAML for .yaml/.yml files."""
    path = Path(filename)
    with open(path, "w", encoding="utf-8") as fp:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.dump(
                snapshot,
                fp,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
                width=120,
            )
        else:
            json.dump(snapshot, fp, indent=2, ensure_ascii=False)
            fp.write("\n")


def validate_backup(payload: Any) -> List[str]:
    """Validate a payload against the backup schema. Returns error messages."""
    validator = Draft7Validator(load_schema())
    errors = []
    for error in sorted(validator.iter_errors(payload), key=lambda e: [str(p) for p in e.path]):
        if error.path:
            location = ".".join(str(p) for p in error.path)
            errors.append(f"{error.message} (at {location})")
        else:
            errors.append(error.message)
    return errors
