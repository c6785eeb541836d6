"""
Page Segmenter — splits a component list into pages.

A page-break closes the page being built, but only when that page
already holds something: consecutive breaks, or a break at the very
start, never produce an empty page. The break itself is not page
content; it is kept as the page's `marker` so a page list can be
flattened back into a component list with the same boundaries.

Section headers are structural too, but they are NOT boundaries: they
stay in the page content in document order so the rendering layer can
draw them where the author placed them. Only page-breaks split pages.
Code that wants just the answerable fields filters on is_structural.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from formrules.model import Component, ComponentKind, Page


def segment(components: Iterable[Component]) -> List[Page]:
    """
    Partition components into pages at page-break markers.

    Args:
        components: Components in any order (order_index decides)

    Returns:
        At least one Page. A list without any content yields a single
        empty page.
    """
    pages: List[Page] = []
    buffer: List[Component] = []
    marker: Optional[Component] = None

    for component in sorted(components, key=lambda c: c.order_index):
        if component.kind is ComponentKind.PAGE_BREAK:
            if buffer:
                pages.append(Page(index=len(pages), components=tuple(buffer), marker=marker))
                buffer = []
            # The latest break before a page's first component opens it
            marker = component
            continue
        buffer.append(component)

    if buffer or not pages:
        pages.append(Page(index=len(pages), components=tuple(buffer), marker=marker if buffer else None))
    return pages


def flatten(pages: Iterable[Page]) -> List[Component]:
    """Components of all pages in order, with each page's marker restored."""
    components: List[Component] = []
    for page in pages:
        if page.marker is not None:
            components.append(page.marker)
        components.extend(page.components)
    return components


def page_of(pages: Iterable[Page], component_id: str) -> Optional[int]:
    """Index of the page holding a component, or None."""
    for page in pages:
        if component_id in page.component_ids:
            return page.index
    return None
