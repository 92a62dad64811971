"""
Checks on the project metadata.
"""
import os

import pytest

tomllib = pytest.importorskip("tomllib")

PYPROJECT = os.path.join(os.path.dirname(__file__), "..", "pyproject.toml")


@pytest.fixture
def project():
    with open(PYPROJECT, "rb") as f:
        return tomllib.load(f)["project"]


def test_design_notes_are_not_the_long_description(project):
    assert project.get("readme") != "DESIGN.md"


def test_console_script(project):
    assert project["scripts"]["eve-toons"] == "toons_app.main:main"
