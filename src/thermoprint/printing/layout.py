"""Layout engine for thermal printer receipts.

Handles line wrapping, column alignment and receipt composition for
58mm ESC/POS printers (32 characters per line in the default font).
"""

import logging
from typing import List, Union
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 32


def wrap(text: str, max_width: int = DEFAULT_WIDTH) -> List[str]:
    """Wrap text into lines of at most `max_width` characters.

    Line breaks in the input are kept: each paragraph is wrapped on its
    own and no returned line contains a newline. Within a paragraph words
    are accumulated greedily, and a word longer than the width is
    hard-split into fixed-size fragments, each on its own line. A
    paragraph that already fits is returned untouched, and empty text
    yields one empty line.
    """
    if max_width < 1:
        raise ValueError(f"max_width must be positive, got {max_width}")

    text = "" if text is None else str(text)
    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(_wrap_paragraph(paragraph, max_width))
    return lines


def _wrap_paragraph(paragraph: str, max_width: int) -> List[str]:
    if len(paragraph) <= max_width:
        return [paragraph]

    lines: List[str] = []
    current = ""
    for word in paragraph.split():
        if len(word) > max_width:
            if current:
                lines.append(current)
                current = ""
            for start in range(0, len(word), max_width):
                lines.append(word[start:start + max_width])
            continue

        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)

    return lines or [""]


def aligned_row(left: str, right: str, width: int = DEFAULT_WIDTH) -> str:
    """Compose `left` and `right` so `right` ends on the column boundary.

    At least one space always separates the two values, so rows that do
    not fit run past the width instead of merging.
    """
    pad = max(1, width - len(left) - len(right))
    return f"{left}{' ' * pad}{right}"


class Alignment(Enum):
    """Justification, valued by its ESC a argument."""

    LEFT = 0
    CENTER = 1


class TextSize(Enum):
    """Character size, valued by its GS ! argument."""

    SMALL = 0x00
    MEDIUM = 0x01  # double height


# ESC/POS
ESC = b"\x1b"
GS = b"\x1d"
LF = b"\n"
INIT = ESC + b"@"
CUT_FULL = GS + b"V\x00"
CUT_PARTIAL = GS + b"V\x01"

# ESC t n per code page
CODEPAGES = {
    "cp437": 0,
    "cp850": 2,
    "cp866": 17,
    "cp858": 19,
}

SEPARATOR_CHAR = "-"


@dataclass
class TextBlock:
    """Text printed with one alignment and size.

    With `wrap=False` the text goes out as a single pre-composed line,
    internal padding included.
    """

    text: str
    alignment: Alignment = Alignment.LEFT
    size: TextSize = TextSize.SMALL
    wrap: bool = True


@dataclass
class SeparatorBlock:
    """A full-width divider line."""


@dataclass
class SpacerBlock:
    lines: int = 1


Block = Union[TextBlock, SeparatorBlock, SpacerBlock]


@dataclass
class ReceiptLayout:
    """Ordered blocks of a receipt, built with chained add_* calls."""

    blocks: List[Block] = field(default_factory=list)
    width: int = DEFAULT_WIDTH

    def _push(self, block: Block) -> "ReceiptLayout":
        self.blocks.append(block)
        return self

    def add_text(
        self,
        text: str,
        alignment: Alignment = Alignment.LEFT,
        size: TextSize = TextSize.SMALL,
        wrap: bool = True,
    ) -> "ReceiptLayout":
        return self._push(TextBlock(text, alignment, size, wrap))

    def add_row(self, left: str, right: str, size: TextSize = TextSize.SMALL) -> "ReceiptLayout":
        """Add a label/value row with the value pushed to the right edge."""
        return self.add_text(aligned_row(left, right, self.width), size=size, wrap=False)

    def add_separator(self) -> "ReceiptLayout":
        return self._push(SeparatorBlock())

    def add_space(self, lines: int = 1) -> "ReceiptLayout":
        return self._push(SpacerBlock(lines))


class LayoutEngine:
    """Turns a ReceiptLayout into an ESC/POS byte stream or a text preview.

    The stream opens with printer init and a code page selection, and
    always closes with the paper cut. Characters the code page cannot
    represent are printed as "?".
    """

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        codepage: str = "cp850",
        partial_cut: bool = False,
    ):
        if codepage not in CODEPAGES:
            raise ValueError(f"Unsupported code page: {codepage}")
        self.width = width
        self.codepage = codepage
        self.partial_cut = partial_cut

    @property
    def cut_command(self) -> bytes:
        return CUT_PARTIAL if self.partial_cut else CUT_FULL

    def encode_text(self, text: str) -> bytes:
        return text.encode(self.codepage, errors="replace")

    def lines_for(self, block: Block) -> List[str]:
        """Printable lines a block expands to, before any formatting."""
        if isinstance(block, SpacerBlock):
            return [""] * block.lines
        if isinstance(block, SeparatorBlock):
            return [SEPARATOR_CHAR * self.width]
        if not block.wrap:
            return [block.text]
        return wrap(block.text, self.width)

    def render(self, layout: ReceiptLayout) -> bytes:
        out = bytearray(INIT)
        out += ESC + b"t" + bytes([CODEPAGES[self.codepage]])

        for block in layout.blocks:
            if not isinstance(block, TextBlock):
                if isinstance(block, SeparatorBlock):
                    out += ESC + b"a" + bytes([Alignment.LEFT.value])
                for line in self.lines_for(block):
                    out += self.encode_text(line) + LF
                continue

            out += ESC + b"a" + bytes([block.alignment.value])
            out += GS + b"!" + bytes([block.size.value])
            for line in self.lines_for(block):
                out += self.encode_text(line) + LF
            if block.size is not TextSize.SMALL:
                out += GS + b"!" + bytes([TextSize.SMALL.value])

        out += self.cut_command
        logger.debug(f"Rendered {len(layout.blocks)} blocks into {len(out)} bytes")
        return bytes(out)

    def preview_text(self, layout: ReceiptLayout) -> str:
        """Framed plain-text picture of the receipt, one row per printed line."""
        width = self.width
        border = "+" + "-" * width + "+"
        rows = [border]
        for block in layout.blocks:
            centered = isinstance(block, TextBlock) and block.alignment is Alignment.CENTER
            for line in self.lines_for(block):
                line = line[:width]
                rows.append(f"|{line.center(width) if centered else line.ljust(width)}|")
        rows.append(border)
        return "\n".join(rows)
