"""
Point file reading and result writing.

Supported point formats (chosen by file extension):
- .json: a list of coordinate lists, a list of records, or {"points": [...]}
- .jsonl: one coordinate list or record per line
- .csv: one point per row, with an optional header row

Records (dicts) need ``fields`` naming the coordinate keys in order.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from pydantic import BaseModel

from gridcluster.core.vector import Vector
from gridcluster.utils.advanced_logging import timed
from gridcluster.utils.error_handling import InputFormatError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _to_vector(item: Any, fields: Optional[Sequence[str]], where: str) -> Vector:
    if isinstance(item, dict) and not fields:
        raise InputFormatError(
            f"{where}: record found but no fields given",
            details={"keys": sorted(item.keys())},
        )
    try:
        if isinstance(item, dict):
            return Vector.from_mapping(item, *fields)
        return Vector.from_array([float(value) for value in item])
    except (KeyError, TypeError, ValueError) as e:
        raise InputFormatError(f"{where}: not a point ({e})") from e


def _read_json(path: Path, fields: Optional[Sequence[str]]) -> List[Vector]:
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputFormatError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("points")
    if not isinstance(data, list):
        raise InputFormatError(
            f"{path}: expected a list of points or an object with a 'points' list"
        )
    return [_to_vector(item, fields, f"{path}[{i}]") for i, item in enumerate(data)]


def _read_jsonl(path: Path, fields: Optional[Sequence[str]]) -> List[Vector]:
    points = []
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError as e:
                raise InputFormatError(f"Invalid JSON in {path}:{line_number}: {e}") from e
            points.append(_to_vector(item, fields, f"{path}:{line_number}"))
    return points


def _read_csv(path: Path, fields: Optional[Sequence[str]]) -> List[Vector]:
    with open(path, "r", newline="") as f:
        rows = [row for row in csv.reader(f) if row]
    if not rows:
        return []

    header = None
    try:
        [float(value) for value in rows[0]]
    except ValueError:
        header, rows = [name.strip() for name in rows[0]], rows[1:]

    if fields and header is None:
        raise InputFormatError(f"{path}: fields given but the file has no header row")

    points = []
    for row_number, row in enumerate(rows, start=2 if header else 1):
        item: Any = dict(zip(header, row)) if fields else row
        points.append(_to_vector(item, fields, f"{path}:{row_number}"))
    return points


READERS = {
    ".json": _read_json,
    ".jsonl": _read_jsonl,
    ".csv": _read_csv,
}


@timed(operation="load_points")
def load_points(path: PathLike, fields: Optional[Sequence[str]] = None) -> List[Vector]:
    """
    Read points from a JSON, JSONL or CSV file.

    Args:
        path: Input file
        fields: Record keys (or CSV header names) to use as coordinates

    Returns:
        List of Vectors in file order

    Raises:
        InputFormatError: If the format is unknown or a point cannot be parsed
    """
    path = Path(path)
    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise InputFormatError(
            f"Unsupported point file '{path.suffix}'. Supported: {list(READERS.keys())}",
            details={"path": str(path)},
        )
    points = reader(path, fields)
    logger.info(f"Loaded {len(points)} points from {path}")
    return points


@timed(operation="save_points")
def save_points(points: Sequence[Vector], path: PathLike) -> None:
    """Write points as a JSON list of coordinate lists."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump([point.to_list() for point in points], f)
    logger.info(f"Saved {len(points)} points to {path}")


def save_model(model: BaseModel, path: PathLike) -> None:
    """Write a pydantic model as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(model.model_dump_json(indent=2))
