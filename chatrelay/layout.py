"""Geometry of chat bubbles: where bubble, text, icon and timestamp go."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

Color = tuple[int, int, int]


@dataclass(frozen=True)
class Rect:
    """Integer rectangle; ``right`` and ``bottom`` are inclusive edges."""

    x: int
    y: int
    width: int
    height: int

    @property
    def left(self) -> int:
        return self.x

    @property
    def top(self) -> int:
        return self.y

    @property
    def right(self) -> int:
        return self.x + self.width - 1

    @property
    def bottom(self) -> int:
        return self.y + self.height - 1

    def adjusted(self, left: int, top: int, right: int, bottom: int) -> "Rect":
        """Move each edge by the given amount."""
        return Rect(
            self.x + left,
            self.y + top,
            self.width + right - left,
            self.height + bottom - top,
        )


@dataclass(frozen=True)
class BubbleStyle:
    """Sizes and colours of a chat bubble."""

    radius: int = 8
    horizontal_padding: int = 12
    vertical_padding: int = 8
    timestamp_height: int = 20
    width_percent: float = 0.6
    icon_allowance: int = 50
    icon_size: int = 25
    outgoing_bubble: Color = (220, 248, 198)
    incoming_bubble: Color = (255, 255, 255)
    outgoing_border: Color = (178, 216, 178)
    incoming_border: Color = (224, 224, 224)
    timestamp_color: Color = (160, 160, 164)
    text_color: Color = (0, 0, 0)


@dataclass(frozen=True)
class BubbleLayout:
    """Where every part of one message item is drawn."""

    bubble: Rect
    text: Rect
    icon: Optional[Rect]
    timestamp: Rect
    align_right: bool
    bubble_color: Color
    border_color: Color
    radius: int


_DEFAULT_STYLE = BubbleStyle()


def max_bubble_width(item_width: int, style: Optional[BubbleStyle] = None) -> int:
    """Widest a bubble may grow inside an item of the given width."""
    style = style or _DEFAULT_STYLE
    return int(item_width * style.width_percent)


def bubble_layout(
    item_rect: Rect,
    text_width: int,
    outgoing: bool,
    has_icon: bool = False,
    style: Optional[BubbleStyle] = None,
) -> BubbleLayout:
    """Place the bubble for a message whose wrapped text is ``text_width`` wide."""
    style = style or _DEFAULT_STYLE
    hpad, vpad = style.horizontal_padding, style.vertical_padding
    widest = max_bubble_width(item_rect.width, style)
    content = item_rect.adjusted(2, 2, -2, -2)

    width = text_width + 2 * hpad
    if has_icon:
        width += style.icon_allowance + hpad
    width = min(width, widest)

    height = content.height - style.timestamp_height
    left = content.right - width if outgoing else content.left
    bubble = Rect(left, content.top, width, height)

    text = bubble.adjusted(hpad, vpad, -hpad, -vpad)
    icon = None
    if has_icon:
        text = text.adjusted(style.icon_allowance + hpad, 0, 0, 0)
        icon = Rect(bubble.left + hpad, bubble.top + vpad, style.icon_size, style.icon_size)

    timestamp = Rect(content.left, bubble.bottom + 2, content.width, style.timestamp_height)

    return BubbleLayout(
        bubble=bubble,
        text=text,
        icon=icon,
        timestamp=timestamp,
        align_right=outgoing,
        bubble_color=style.outgoing_bubble if outgoing else style.incoming_bubble,
        border_color=style.outgoing_border if outgoing else style.incoming_border,
        radius=style.radius,
    )


def bubble_size_hint(
    item_width: int,
    text_height: int,
    has_icon: bool = False,
    style: Optional[BubbleStyle] = None,
) -> tuple[int, int]:
    """Preferred ``(width, height)`` of an item holding text ``text_height`` tall."""
    style = style or _DEFAULT_STYLE
    vpad, stamp = style.vertical_padding, style.timestamp_height
    total = text_height + 2 * vpad + stamp + 4
    if has_icon:
        total = max(total, text_height + style.icon_allowance + 2 * vpad + stamp + 4)
    return item_width, total