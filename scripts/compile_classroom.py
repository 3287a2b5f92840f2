#!/usr/bin/env python3
"""
compile_classroom.py - Bundle a course definition into deployable classroom.db.

Compiles classrooms, collections, assignments and questions from a YAML
course file into a single SQLite database for runtime serving.

Usage:
  python scripts/compile_classroom.py mechanics
  python scripts/compile_classroom.py courses/mechanics.yaml --output data/classroom.db
  python scripts/compile_classroom.py --list
"""

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from physlab import config
from physlab.classroom import compile_classroom
from physlab.utils import get_available_courses, load_course

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Compile a course into classroom.db")
    parser.add_argument(
        "course",
        nargs="?",
        help="Course name in the courses directory, or path to a YAML file"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=config.classroom_db_path(),
        help="Output database path"
    )
    parser.add_argument(
        "--courses-dir",
        type=Path,
        default=None,
        help="Directory holding course YAML files"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available courses and exit"
    )

    args = parser.parse_args()

    if args.list:
        for name in get_available_courses(args.courses_dir):
            print(name)
        return

    if not args.course:
        parser.error("a course name or path is required")

    logger.info(f"Loading course {args.course}...")
    try:
        course = load_course(args.course, args.courses_dir)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info("Compiling database...")
    try:
        stats = compile_classroom(course, args.output)
    except ValidationError as e:
        logger.error(f"Invalid course content:\n{e}")
        sys.exit(1)

    logger.info("=" * 50)
    logger.info("COMPILATION COMPLETE")
    logger.info("=" * 50)
    logger.info(f"Database: {args.output}")
    logger.info(f"Classrooms: {stats['classrooms']}")
    logger.info(f"Collections: {stats['collections']}")
    logger.info(f"Assignments: {stats['assignments']}")
    logger.info(f"Questions: {stats['questions']}")


if __name__ == "__main__":
    main()
