import importlib
import pathlib

import pytest

DOCS = pathlib.Path(__file__).parent.parent / "docs"


def _api_modules():
    lines = (DOCS / "api.rst").read_text().splitlines()
    return [line.strip() for line in lines if line.strip().startswith("SDFQueryBench.")]


def test_docs_sources_exist():
    for name in ["conf.py", "index.rst", "usage.rst", "api.rst"]:
        assert (DOCS / name).exists()
    index = (DOCS / "index.rst").read_text()
    assert "usage" in index
    assert "api" in index
    assert len(_api_modules()) == 8


@pytest.mark.parametrize("module", _api_modules())
def test_api_modules_import(module):
    assert importlib.import_module(module).__name__ == module
