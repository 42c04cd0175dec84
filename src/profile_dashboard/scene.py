from __future__ import annotations

from dataclasses import dataclass, field
from html import escape
from typing import Any, Dict, Iterator, List, Optional

from .scales import format_number

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


@dataclass
class Node:
    """One element of the drawable scene (an SVG element, by convention)."""

    tag: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    text: Optional[str] = None

    def append(self, child: "Node") -> "Node":
        self.children.append(child)
        return child

    def iter(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.iter()


def element(tag: str, **attrs: Any) -> Node:
    """Build a node; ``stroke_width`` style keyword names become ``stroke-width``."""

    return Node(tag=tag, attrs={key.rstrip("_").replace("_", "-"): value for key, value in attrs.items()})


def text(x: float, y: float, content: str, class_name: str = "", anchor: str = "start", **attrs: Any) -> Node:
    node = element("text", x=x, y=y, text_anchor=anchor, **attrs)
    if class_name:
        node.attrs["class"] = class_name
    node.text = content
    return node


def _attr_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def _serialize(node: Node, parts: List[str]) -> None:
    attrs = "".join(f' {name}="{escape(_attr_value(value))}"' for name, value in node.attrs.items())
    if not node.children and node.text is None:
        parts.append(f"<{node.tag}{attrs}/>")
        return
    parts.append(f"<{node.tag}{attrs}>")
    if node.text is not None:
        parts.append(escape(node.text, quote=False))
    for child in node.children:
        _serialize(child, parts)
    parts.append(f"</{node.tag}>")


@dataclass
class Scene:
    """
    Renderer output: an SVG root plus enough metadata to tell placeholders apart.

    ``placeholder`` carries the empty-state message when the chart had nothing
    to draw; such scenes contain a single text node and no geometry.
    """

    width: float
    height: float
    root: Node
    title: str = ""
    placeholder: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.placeholder is not None

    def iter_nodes(self) -> Iterator[Node]:
        return self.root.iter()

    def find(self, tag: str) -> List[Node]:
        return [node for node in self.iter_nodes() if node.tag == tag]

    def to_svg(self) -> str:
        parts: List[str] = []
        _serialize(self.root, parts)
        return "".join(parts)


def svg_root(width: float, height: float) -> Node:
    return element(
        "svg",
        xmlns=SVG_NAMESPACE,
        width=width,
        height=height,
        viewBox=f"0 0 {format_number(width)} {format_number(height)}",
    )


def empty_scene(message: str, width: float, height: float) -> Scene:
    root = svg_root(width, height)
    root.append(text(width / 2, height / 2, message, "empty-state", "middle", fill="#64748b"))
    return Scene(width=width, height=height, root=root, placeholder=message)
