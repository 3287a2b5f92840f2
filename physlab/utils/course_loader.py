"""
Course loader utility for PhysLab.

Loads YAML course definitions from the courses/ directory.
"""

from pathlib import Path
from typing import Any

import yaml

from physlab import config


def load_course(name: str, courses_dir: Path | None = None) -> dict[str, Any]:
    """
    Load a course definition by name or path.

    Args:
        name: Course name without .yaml extension (e.g., "mechanics"),
            or a path to a YAML file
        courses_dir: Optional custom courses directory

    Returns:
        Dict containing the parsed course with keys:
        - title: optional course title
        - classrooms: list of classrooms with collections and assignments

    Raises:
        FileNotFoundError: If course file doesn't exist
        ValueError: If the file does not contain a mapping
        yaml.YAMLError: If YAML parsing fails
    """
    candidate = Path(name)
    if candidate.suffix in (".yaml", ".yml"):
        file_path = candidate
    else:
        file_path = (courses_dir or config.courses_dir()) / f"{name}.yaml"

    if not file_path.exists():
        raise FileNotFoundError(f"Course definition not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        course = yaml.safe_load(f)

    if not isinstance(course, dict):
        raise ValueError(f"Course file must contain a mapping: {file_path}")
    return course


def get_available_courses(courses_dir: Path | None = None) -> list[str]:
    """
    List all available course definitions.

    Args:
        courses_dir: Optional custom courses directory

    Returns:
        List of course names (without .yaml extension)
    """
    dir_path = courses_dir or config.courses_dir()
    if not dir_path.exists():
        return []
    return sorted(p.stem for p in dir_path.glob("*.yaml"))
