"""
Parsed XML node model.

The XML adapter produces a plain tree built from four node kinds:

- scalar:   str / int / float (leaf element text)
- TextNode: leaf element that also carries attributes
- mapping:  dict of child tag -> node (attributes as "@name" keys)
- sequence: list of nodes (repeated or known-repeatable elements)

Extraction helpers dispatch on exactly these kinds.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

TEXT_KEY = "#text"
ATTRIBUTE_PREFIX = "@"


@dataclass(frozen=True)
class TextNode:
    """Leaf element with attributes, e.g. <Amount currency="INR">500</Amount>."""
    text: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.text


Scalar = Union[str, int, float]
Node = Union[Scalar, TextNode, Dict[str, Any], List[Any], None]
ParsedDocument = Dict[str, Any]
