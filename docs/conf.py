# Sphinx configuration for the CliqueFlow API reference.
#
# Build with ``sphinx-build -b html docs docs/_build``.

import os
import sys

sys.path.insert(0, os.path.abspath(".."))

from cliqueflow import __version__  # noqa: E402

# -- Project information -----------------------------------------------------
project = "CliqueFlow"
copyright = "2025, CliqueFlow Contributors"
author = "CliqueFlow Contributors"
release = __version__

# -- General configuration ---------------------------------------------------
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.mathjax",
    "sphinx.ext.intersphinx",
]

# The package mixes NumPy- and Google-style sections.
napoleon_google_docstrings = True
napoleon_numpy_docstrings = True
napoleon_include_init_with_doc = False

autodoc_member_order = "groupwise"
autodoc_typehints = "signature"
autodoc_default_options = {"members": True, "show-inheritance": True}

exclude_patterns = ["_build"]

# -- Options for HTML output -------------------------------------------------
html_theme = "sphinx_rtd_theme"

# -- Intersphinx configuration -----------------------------------------------
intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
    "networkx": ("https://networkx.org/documentation/stable/", None),
}
