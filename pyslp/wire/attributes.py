"""Attribute list parsing.

Attribute lists are comma separated items of the form ``(tag=v1,v2)`` or a
bare keyword ``tag``. Only the structure is interpreted here; filter
evaluation is left to the responding agents.
"""

from ..errors import SLPError, SLPException
from .escape import unescape


def _split_top_level(attr_list: str) -> list[str]:
    items = []
    depth = 0
    current = []
    for char in attr_list:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise SLPException(SLPError.PARSE_ERROR, "unbalanced ')' in attribute list")
        if char == "," and depth == 0:
            items.append("".join(current))
            current = []
            continue
        current.append(char)
    if depth != 0:
        raise SLPException(SLPError.PARSE_ERROR, "unbalanced '(' in attribute list")
    items.append("".join(current))
    return [item.strip() for item in items if item.strip()]


def parse_attr_list(attr_list: str) -> dict[str, list[str]]:
    """Parse an attribute list into a tag -> values mapping.

    Args:
        attr_list: Attribute list in SLP wire format.

    Returns:
        Dictionary keyed by unescaped tag. Keyword attributes map to an
        empty list.

    Raises:
        SLPException: PARSE_ERROR for unbalanced parentheses, missing '='
            or malformed escapes.
    """
    attributes: dict[str, list[str]] = {}
    for item in _split_top_level(attr_list):
        if not item.startswith("("):
            attributes[unescape(item, False)] = []
            continue
        if not item.endswith(")") or "=" not in item:
            raise SLPException(SLPError.PARSE_ERROR, f"malformed attribute {item!r}")
        tag, _, values = item[1:-1].partition("=")
        attributes[unescape(tag.strip(), False)] = [
            unescape(value, False) for value in values.split(",")
        ]
    return attributes
