# Sphinx configuration of the SDFQueryBench documentation.
# https://www.sphinx-doc.org/en/master/usage/configuration.html
from importlib.metadata import version as package_version

project = "SDFQueryBench"
release = str(package_version("SDFQueryBench"))
version = ".".join(release.split(".")[:2])

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",
    "sphinx_autodoc_typehints",
]

exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

# api.rst lists the modules, the stub pages are generated on build
autosummary_generate = True
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
}
autodoc_typehints = "both"
autodoc_typehints_description_target = "all"

napoleon_numpy_docstring = True
napoleon_google_docstring = True

html_theme = "pydata_sphinx_theme"
html_theme_options = {"collapse_navigation": False, "navigation_depth": 3}
