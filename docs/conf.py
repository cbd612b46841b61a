"""
Configuration file for the Sphinx documentation builder.

For the full list of built-in configuration values, see the documentation:
https://www.sphinx-doc.org/en/master/usage/configuration.html
"""

import collections
from importlib.metadata import version as get_version

project = "admat"
release = get_version("admat")

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.viewcode",
    "sphinx.ext.napoleon",
    "sphinx.ext.intersphinx",
]

napoleon_preprocess_types = True
autoclass_content = "both"
python_use_unqualified_type_names = True
autodoc_typehints = "description"

intersphinx_mapping = {
    "python": ("https://docs.python.org/3/", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
}

exclude_patterns = ["_build"]

html_theme = "pydata_sphinx_theme"


# -- Post process ------------------------------------------------------------

# Diagnostic and Failure are NamedTuples: skip the generated field accessors and
# the inherited tuple methods so only the documented attributes are listed

def _skip_namedtuple_members(_app, _what, _name, obj, skip, _options):
    if isinstance(obj, collections._tuplegetter) or str(obj) in {  # noqa: SLF001
        "<method 'count' of 'tuple' objects>",
        "<method 'index' of 'tuple' objects>",
    }:
        return True
    return skip


# Links to type aliases need the :data: role to resolve
TYPE_ALIASES = ["ScalarLike", "MatrixLike", "CheckResult", "ScalarFunction", "ArrayFunction"]


def _resolve_type_aliases(app, env, node, contnode):
    if (
        node["refdomain"] == "py"
        and node["reftype"] == "class"
        and node["reftarget"] in TYPE_ALIASES
    ):
        return app.env.get_domain("py").resolve_xref(
            env, node["refdoc"], app.builder, "data", node["reftarget"], node, contnode
        )
    return None


def setup(app):
    app.connect("autodoc-skip-member", _skip_namedtuple_members)
    app.connect("missing-reference", _resolve_type_aliases)
