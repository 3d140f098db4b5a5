"""
pagination.py — slice one tall bitmap into fixed-height pages.

The export renders the annotated page as a single image scaled to the page
width, then walks down it one page height at a time:

    offset = 0, emit page
    while remaining > margin: offset += page_height, emit page

Page k (0-based) exposes rows [k × page_height, min((k+1) × page_height, H)),
so the pages tile the image with no gap and no overlap and the final page
shows exactly the tail.
"""
import math
from typing import List

from pydantic import BaseModel, ConfigDict

# Sub-pixel remainders from scaling must not produce an extra blank page
_EPSILON = 1e-6


class PageSlice(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    top: float       # first row exposed on this page (inclusive)
    bottom: float    # last row exposed on this page (exclusive)

    @property
    def height(self) -> float:
        return self.bottom - self.top


def scaled_height(image_width: float, image_height: float, page_width: float) -> float:
    """Height of the image once scaled to fill the page width."""
    if image_width <= 0:
        raise ValueError("image_width must be positive")
    return image_height * page_width / image_width


def page_count(image_height: float, page_height: float, margin: float = 0.0) -> int:
    """⌈H / P⌉ pages, ignoring a trailing remainder no larger than `margin`."""
    if page_height <= 0:
        raise ValueError("page_height must be positive")
    if image_height <= 0:
        return 0
    full, remainder = divmod(image_height, page_height)
    pages = int(full)
    if remainder > margin + _EPSILON:
        pages += 1
    return max(pages, 1)


def paginate(image_height: float, page_height: float, margin: float = 0.0) -> List[PageSlice]:
    """
    Ordered page slices for an image of `image_height` rendered onto pages of
    usable height `page_height`.

    3000 px over 1000 px pages → 3 slices, the last covering [2000, 3000).
    """
    count = page_count(image_height, page_height, margin)
    slices = []
    for index in range(count):
        top = index * page_height
        bottom = min(top + page_height, image_height)
        slices.append(PageSlice(index=index, top=top, bottom=bottom))
    return slices
