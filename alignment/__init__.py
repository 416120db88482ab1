"""
alignment package

Helper-line snapping of dragged keys against the rest of the layout.
"""

from alignment.helper_lines import NO_HELPER_LINES, HelperLines, get_helper_lines

__all__ = ["HelperLines", "NO_HELPER_LINES", "get_helper_lines"]
