"""Common literal values used across tutorial_pages.

These constants keep filenames, suffixes, and front-matter delimiters
centralized so the loader, builder, and tests import the same values without
drifting. Intended for internal use within the tutorial_pages package.

Examples
--------
>>> from tutorial_pages import _constants
>>> _constants.BUILD_META_FILENAME
'.tutorial-pages-build.json'
>>> ".mdx" in _constants.MARKDOWN_SUFFIXES
True
"""

MARKDOWN_SUFFIXES = frozenset({".md", ".mdx"})
FRONT_MATTER_DELIMITER = "---"
CATEGORY_FILENAMES = ("_category_.yml", "_category_.yaml", "_category_.json")
BUILD_META_FILENAME = ".tutorial-pages-build.json"
DEFAULT_MANIFEST_FILENAME = "sidebar.json"
DEFAULT_SEARCH_INDEX_FILENAME = "search-index.json"
OUTPUT_SUFFIX = ".html"
INDEX_FILENAME = "index.html"
DOC_TEMPLATE = "doc_page.jinja"
ERROR_TEMPLATE = "error_page.jinja"
