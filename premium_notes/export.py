"""
PDF export of the note grid.

The grid is drawn with Pillow using a fixed capture layout (two columns,
1200 px wide, dark theme) at 3x scale, so the output does not depend on the
viewer's screen. The raster is placed on a single PDF page that is A4 wide
and as tall as the raster's aspect ratio requires.
"""

from __future__ import annotations

import io
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .exceptions import ExportError
from .logging import get_logger
from .presentation import format_date, is_locked
from .schemas import Note, RowId


logger = get_logger(__name__)

SCALE = 3
GRID_WIDTH = 1200
GRID_PADDING = 40
GRID_GAP = 20
COLUMNS = 2
CARD_PADDING = 20
CARD_RADIUS = 24
CARD_BORDER = 2
IMAGE_HEIGHT = 192
TEXT_SIZE = 20
LINE_HEIGHT = 1.6
LABEL_SIZE = 12

BACKGROUND = "#020617"
CARD_FILL = "#0f172a"
CARD_OUTLINE = "#1e293b"
TEXT_COLOR = "#e2e8f0"
ACCENT_COLOR = "#34d399"
MUTED_COLOR = "#64748b"

ImageLoader = Callable[[str], bytes]


@dataclass
class ExportResult:
    filename: str
    data: bytes
    width: int
    height: int


def _font(size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def _wrap(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.FreeTypeFont, max_width: float) -> List[str]:
    lines: List[str] = []
    for raw_line in text.splitlines() or [""]:
        current = ""
        for word in raw_line.split(" "):
            candidate = f"{current} {word}" if current else word
            if draw.textlength(candidate, font=font) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            # Hard-split words wider than the card.
            while draw.textlength(word, font=font) > max_width and len(word) > 1:
                cut = len(word)
                while cut > 1 and draw.textlength(word[:cut], font=font) > max_width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


class GridRenderer:
    def __init__(self, image_loader: Optional[ImageLoader] = None, scale: int = SCALE) -> None:
        self.image_loader = image_loader
        self.scale = scale
        self.text_font = _font(TEXT_SIZE * scale)
        self.label_font = _font(LABEL_SIZE * scale)

    def px(self, value: float) -> int:
        return int(round(value * self.scale))

    @property
    def card_width(self) -> int:
        inner = GRID_WIDTH - 2 * GRID_PADDING - (COLUMNS - 1) * GRID_GAP
        return self.px(inner / COLUMNS)

    def _load_image(self, url: str) -> Optional[Image.Image]:
        if self.image_loader is None:
            return None
        try:
            data = self.image_loader(url)
            image = Image.open(io.BytesIO(data))
            image.load()
        except Exception as exc:
            # A broken image leaves an empty slot, like a failed <img>.
            logger.warning("Export image skipped", url=url, error=str(exc))
            return None
        return ImageOps.fit(image.convert("RGB"), (self.card_width, self.px(IMAGE_HEIGHT)))

    def _card_body(self, note: Note, locked: bool, measure: ImageDraw.ImageDraw) -> Tuple[Optional[Image.Image], List[str], List[str]]:
        if locked:
            return None, ["Locked"], []
        image = self._load_image(note.image_url) if note.image_url else None
        text_width = self.card_width - 2 * self.px(CARD_PADDING)
        lines = _wrap(measure, note.content, self.text_font, text_width)
        footer = [
            f"IN: {format_date(note.created_at)}",
            f"EDIT: {format_date(note.updated_at)}",
        ]
        return image, lines, footer

    def _card_height(self, image: Optional[Image.Image], lines: Sequence[str], footer: Sequence[str]) -> int:
        line_px = self.px(TEXT_SIZE * LINE_HEIGHT)
        label_px = self.px(LABEL_SIZE * LINE_HEIGHT)
        height = 2 * self.px(CARD_PADDING) + label_px + self.px(8)
        if image is not None:
            height += image.height
        height += len(lines) * line_px
        if footer:
            height += self.px(12) + len(footer) * label_px
        return height

    def render(self, notes: Sequence[Note], unlocked: Iterable[RowId]) -> Image.Image:
        unlocked = set(unlocked)
        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        cards = []
        for note in notes:
            locked = is_locked(note, unlocked)
            image, lines, footer = self._card_body(note, locked, measure)
            cards.append((note, locked, image, lines, footer, self._card_height(image, lines, footer)))

        rows = [cards[i:i + COLUMNS] for i in range(0, len(cards), COLUMNS)]
        row_heights = [max(card[-1] for card in row) for row in rows]
        padding, gap = self.px(GRID_PADDING), self.px(GRID_GAP)
        width = self.px(GRID_WIDTH)
        height = 2 * padding + sum(row_heights) + gap * max(len(rows) - 1, 0)

        canvas_image = Image.new("RGB", (width, max(height, 2 * padding)), BACKGROUND)
        draw = ImageDraw.Draw(canvas_image)
        y = padding
        for row, row_height in zip(rows, row_heights):
            for column, card in enumerate(row):
                x = padding + column * (self.card_width + gap)
                self._draw_card(canvas_image, draw, x, y, card)
            y += row_height + gap
        return canvas_image

    def _draw_card(self, target: Image.Image, draw: ImageDraw.ImageDraw, x: int, y: int, card) -> None:
        note, locked, image, lines, footer, height = card
        draw.rounded_rectangle(
            (x, y, x + self.card_width, y + height),
            radius=self.px(CARD_RADIUS),
            fill=CARD_FILL,
            outline=CARD_OUTLINE,
            width=self.px(CARD_BORDER),
        )
        cursor = y + self.px(CARD_PADDING)
        inner_x = x + self.px(CARD_PADDING)
        if image is not None:
            target.paste(image, (x, cursor))
            cursor += image.height
        label = "LOCKED" if locked else note.category.upper()
        draw.text((inner_x, cursor), label, font=self.label_font, fill=MUTED_COLOR if locked else ACCENT_COLOR)
        cursor += self.px(LABEL_SIZE * LINE_HEIGHT) + self.px(8)
        if locked:
            return
        for line in lines:
            draw.text((inner_x, cursor), line, font=self.text_font, fill=TEXT_COLOR)
            cursor += self.px(TEXT_SIZE * LINE_HEIGHT)
        cursor += self.px(12)
        for line in footer:
            draw.text((inner_x, cursor), line, font=self.label_font, fill=MUTED_COLOR)
            cursor += self.px(LABEL_SIZE * LINE_HEIGHT)


def raster_to_pdf(image: Image.Image) -> bytes:
    page_width = A4[0]
    page_height = image.height * page_width / image.width
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=(page_width, page_height))
    pdf.drawImage(ImageReader(image), 0, 0, width=page_width, height=page_height)
    pdf.showPage()
    pdf.save()
    return buf.getvalue()


def export_filename(now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"Premium-Notes-{stamp}.pdf"


def export_notes_pdf(
    notes: Sequence[Note],
    unlocked: Iterable[RowId],
    *,
    image_loader: Optional[ImageLoader] = None,
    now_ms: Optional[int] = None,
) -> ExportResult:
    """
    Render the displayed notes to a PDF.

    Locked notes are drawn as a "Locked" card. Raises ExportError on any
    rendering failure; nothing is returned in that case.
    """
    try:
        image = GridRenderer(image_loader=image_loader).render(notes, unlocked)
        data = raster_to_pdf(image)
    except Exception as exc:
        logger.error("PDF export failed", error=str(exc))
        raise ExportError(f"PDF Error: {exc}") from exc
    result = ExportResult(
        filename=export_filename(now_ms),
        data=data,
        width=image.width,
        height=image.height,
    )
    logger.info("PDF exported", filename=result.filename, notes=len(notes), size=len(data))
    return result


__all__ = [
    "ExportResult",
    "GridRenderer",
    "export_notes_pdf",
    "export_filename",
    "raster_to_pdf",
]
