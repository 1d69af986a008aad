# Sphinx configuration of the MarchingMetaballs documentation.
# https://www.sphinx-doc.org/en/master/usage/configuration.html
from importlib.metadata import version as package_version

project = "MarchingMetaballs"
copyright = "2026, Michael Kofler"
author = "Michael Kofler"
release = str(package_version("MarchingMetaballs"))
version = ".".join(release.split(".")[:2])

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",
    "sphinx.ext.mathjax",
    "sphinx_autodoc_typehints",
]

templates_path = ["_templates"]
exclude_patterns = ["_build"]

# the docs build does not need a working vtk installation
autodoc_mock_imports = ["vtk"]
autosummary_generate = True
autodoc_member_order = "bysource"
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
}
autodoc_typehints = "description"
napoleon_numpy_docstring = True
napoleon_google_docstring = True

html_theme = "pydata_sphinx_theme"
html_theme_options = {"navigation_depth": 3}
