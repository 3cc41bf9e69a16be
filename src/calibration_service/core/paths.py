from pathlib import Path


class ProjectRootNotFound(Exception):
    pass


def get_project_root_dir() -> Path:
    """Look for the root pyproject.toml"""
    current = Path(__file__).parent

    # Walk up until we hit the root
    while True:
        candidate = current / "pyproject.toml"
        if candidate.exists():
            return current

        # Check if we've reached the root
        parent = current.parent
        if parent == current:
            raise ProjectRootNotFound

        current = parent


def get_default_database_path() -> Path:
    """Default SQLite location, relative to the project root when available."""
    try:
        root = get_project_root_dir()
    except ProjectRootNotFound:
        root = Path.cwd()
    return root / "data" / "synthetic-students.db"
