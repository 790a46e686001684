"""
Packaging Tests
Project metadata must build from files shipped with the package
"""

from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


def test_readme_field_points_at_shipped_file():
    tomllib = pytest.importorskip("tomllib")
    project = tomllib.loads((ROOT / "pyproject.toml").read_text())["project"]

    readme = project.get("readme")
    if readme is not None:
        assert (ROOT / readme).is_file()
        assert Path(readme).stem.upper() == "README"
