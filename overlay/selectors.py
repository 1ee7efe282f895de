"""
overlay/selectors.py

Minimal CSS selector support for ``ElementTree`` diagrams.

ElementTree's XPath subset cannot express class-token matching, and the
diagram markup is addressed with CSS-style mount selectors (``.outer``,
``g.cell > rect``, ``[data-role='box']``).  Supported grammar:

    selector  := chain ("," chain)*
    chain     := compound (combinator compound)*
    combinator:= whitespace (descendant) | ">" (child)
    compound  := [tag | "*"] (".class" | "#id" | "[attr]" | "[attr=value]")*

Anything else raises :class:`~overlay.errors.InvalidSelector`.  Tag names
are compared without their XML namespace.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterator, Optional, Tuple

from overlay.errors import InvalidSelector

ParentLookup = Callable[[ET.Element], Optional[ET.Element]]

_DESCENDANT = " "
_CHILD = ">"

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<child>>)
    | (?P<comma>,)
    | (?P<star>\*)
    | (?P<tag>-?[_a-zA-Z][-\w]*)
    | \.(?P<cls>-?[_a-zA-Z][-\w]*)
    | \#(?P<id>[-\w]+)
    | \[\s*(?P<attr>[_a-zA-Z][-\w:.]*)\s*
        (?:=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[-\w]+))\s*)?
      \]
    """,
    re.VERBOSE,
)


def local_name(tag: str) -> str:
    """Remove the ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def has_class(el: ET.Element, class_name: str) -> bool:
    """True if *class_name* is one of the element's ``class`` tokens."""
    return class_name in (el.get("class") or "").split()


@dataclass(frozen=True)
class _Compound:
    tag: Optional[str] = None
    classes: Tuple[str, ...] = ()
    ids: Tuple[str, ...] = ()
    attrs: Tuple[Tuple[str, Optional[str]], ...] = ()

    def matches(self, el: ET.Element) -> bool:
        if not isinstance(el.tag, str):
            return False  # comments / processing instructions
        if self.tag is not None and local_name(el.tag) != self.tag:
            return False
        if self.classes:
            tokens = (el.get("class") or "").split()
            if any(c not in tokens for c in self.classes):
                return False
        if any(el.get("id") != i for i in self.ids):
            return False
        for name, value in self.attrs:
            actual = el.get(name)
            if actual is None or (value is not None and actual != value):
                return False
        return True


@dataclass(frozen=True)
class Selector:
    """A parsed selector; build with :func:`parse_selector`."""

    text: str
    chains: Tuple[Tuple[Tuple[Optional[str], _Compound], ...], ...]

    def matches(self, el: ET.Element, parent_of: ParentLookup) -> bool:
        return any(_match_chain(chain, len(chain) - 1, el, parent_of) for chain in self.chains)

    def select(
        self, scope: ET.Element, parent_of: ParentLookup, include_scope: bool = False
    ) -> Iterator[ET.Element]:
        """Yield matching elements under *scope* in document order."""
        for el in scope.iter():
            if el is scope and not include_scope:
                continue
            if self.matches(el, parent_of):
                yield el

    def select_one(
        self, scope: ET.Element, parent_of: ParentLookup
    ) -> Optional[ET.Element]:
        return next(self.select(scope, parent_of), None)


def _match_chain(chain, i: int, el: ET.Element, parent_of: ParentLookup) -> bool:
    combinator, compound = chain[i]
    if not compound.matches(el):
        return False
    if i == 0:
        return True
    if combinator == _CHILD:
        parent = parent_of(el)
        return parent is not None and _match_chain(chain, i - 1, parent, parent_of)
    ancestor = parent_of(el)
    while ancestor is not None:
        if _match_chain(chain, i - 1, ancestor, parent_of):
            return True
        ancestor = parent_of(ancestor)
    return False


@lru_cache(maxsize=128)
def parse_selector(text: str) -> Selector:
    """Parse *text* into a :class:`Selector`.

    Raises:
        InvalidSelector: If *text* is empty or uses unsupported syntax.
    """
    if not isinstance(text, str):
        raise InvalidSelector(repr(text), "selector must be a string")
    source = text.strip()
    if not source:
        raise InvalidSelector(text, "empty selector")

    chains = []
    chain = []
    combinator: Optional[str] = None  # pending combinator before the next compound
    current: Optional[dict] = None

    def close_compound():
        nonlocal current
        if current is None:
            return
        chain.append((current["combinator"], _Compound(
            tag=current["tag"],
            classes=tuple(current["classes"]),
            ids=tuple(current["ids"]),
            attrs=tuple(current["attrs"]),
        )))
        current = None

    pos = 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            raise InvalidSelector(text, f"unexpected {source[pos]!r} at position {pos}")
        pos = m.end()
        kind = m.lastgroup
        if kind in ("dq", "sq", "bare"):
            kind = "attr"

        if kind == "ws":
            if current is not None:
                close_compound()
                combinator = _DESCENDANT
            continue

        if kind == "child":
            if current is not None:
                close_compound()
            elif not chain or combinator == _CHILD:
                raise InvalidSelector(text, f"misplaced '>' at position {m.start()}")
            combinator = _CHILD
            continue

        if kind == "comma":
            close_compound()
            if not chain or combinator == _CHILD:
                raise InvalidSelector(text, f"misplaced ',' at position {m.start()}")
            chains.append(tuple(chain))
            chain = []
            combinator = None
            continue

        if current is None:
            current = {
                "combinator": combinator if chain else None,
                "tag": None, "classes": [], "ids": [], "attrs": [],
            }
            combinator = None
        elif kind in ("tag", "star"):
            raise InvalidSelector(text, f"type selector must come first at position {m.start()}")

        if kind == "tag":
            current["tag"] = m.group("tag")
        elif kind == "cls":
            current["classes"].append(m.group("cls"))
        elif kind == "id":
            current["ids"].append(m.group("id"))
        elif kind == "attr":
            value = next((v for v in m.group("dq", "sq", "bare") if v is not None), None)
            current["attrs"].append((m.group("attr"), value))

    close_compound()
    if not chain or combinator == _CHILD:
        raise InvalidSelector(text, "selector ends with a combinator")
    chains.append(tuple(chain))
    return Selector(text=text, chains=tuple(chains))
