"""In-process model of the host document environment.

A ``Document`` is a mutable, position-addressable text buffer that carries
spans and inline images over position ranges. Erasing a document bumps its
generation, which is how late asynchronous writers find out that the offsets
they captured belong to text that no longer exists.
"""

from __future__ import annotations

import logging
import re
import textwrap
from dataclasses import dataclass

from .spans import SpanRegistry, map_end, map_start

logger: logging.Logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_LINE_BREAK = re.compile(r"[ \t]*\n[ \t]*")


@dataclass(frozen=True)
class InlineImage:
    """Image displayed in place of the text in ``[start, end)``."""

    start: int
    end: int
    data: bytes
    mime_type: str = "image/jpeg"


class Document:
    """A named text buffer with span metadata and image display properties."""

    name: str
    mode: str
    supports_images: bool
    modified: bool
    spans: SpanRegistry
    _text: str
    _point: int
    _images: list[InlineImage]
    _generation: int
    _alive: bool

    def __init__(self, name: str, *, mode: str = "org", supports_images: bool = True) -> None:
        self.name = name
        self.mode = mode
        self.supports_images = supports_images
        self.modified = False
        self.spans = SpanRegistry()
        self._text = ""
        self._point = 0
        self._images = []
        self._generation = 0
        self._alive = True

    def __len__(self) -> int:
        return len(self._text)

    def __repr__(self) -> str:
        return f"Document({self.name!r}, size={len(self._text)}, generation={self._generation})"

    @property
    def text(self) -> str:
        return self._text

    @property
    def point(self) -> int:
        return self._point

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def images(self) -> list[InlineImage]:
        return list(self._images)

    def goto(self, point: int) -> None:
        """Move point, clamped to the buffer."""
        self._point = max(0, min(point, len(self._text)))

    def substring(self, start: int, end: int) -> str:
        return self._text[start:end]

    def insert(self, text: str) -> tuple[int, int]:
        """Insert ``text`` at point and leave point after it.

        Returns:
            The ``(start, end)`` range the text now occupies.
        """
        start = self._point
        self._replace(start, start, text)
        self._point = start + len(text)
        return start, self._point

    def replace_region(self, start: int, end: int, text: str) -> None:
        if not 0 <= start <= end <= len(self._text):
            msg = f"Region [{start}, {end}) is outside {self!r}"
            raise ValueError(msg)
        self._replace(start, end, text)
        self._point = map_end(self._point, start, end, len(text))

    def _replace(self, start: int, end: int, text: str) -> None:
        self._text = self._text[:start] + text + self._text[end:]
        length = len(text)
        self.spans.adjust(start, end, length)
        self._images = [
            InlineImage(map_start(i.start, start, end, length), map_end(i.end, start, end, length), i.data, i.mime_type)
            for i in self._images
        ]
        self.modified = True

    def fill_region(self, start: int, end: int, prefix: str, width: int = 70) -> None:
        """Reflow ``[start, end)`` so continuation lines start with ``prefix``.

        The first line continues from the column ``start`` sits at; blank
        lines separate paragraphs and are kept.
        """
        source = self._text[start:end]
        if not source.strip():
            return
        column = start - (self._text.rfind("\n", 0, start) + 1)
        paragraphs = [_LINE_BREAK.sub(" ", p.strip()) for p in _PARAGRAPH_BREAK.split(source) if p.strip()]

        filled: list[str] = []
        for index, paragraph in enumerate(paragraphs):
            # Pad the first line for the text already on it, then drop the padding
            lead = " " * column if index == 0 else prefix
            wrapper = textwrap.TextWrapper(
                width=width,
                initial_indent=lead,
                subsequent_indent=prefix,
                break_long_words=False,
                break_on_hyphens=False,
                expand_tabs=False,
                replace_whitespace=False,
            )
            wrapped = wrapper.fill(paragraph)
            filled.append(wrapped[column:] if index == 0 else wrapped)
        self.replace_region(start, end, "\n\n".join(filled))

    def put_image(self, start: int, end: int, data: bytes, mime_type: str = "image/jpeg") -> InlineImage:
        """Display ``data`` over ``[start, end)``; the text itself is left untouched."""
        if not 0 <= start < end <= len(self._text):
            msg = f"Image region [{start}, {end}) is outside {self!r}"
            raise ValueError(msg)
        image = InlineImage(start, end, data, mime_type)
        self._images = [i for i in self._images if (i.start, i.end) != (start, end)]
        self._images.append(image)
        return image

    def image_at(self, point: int) -> InlineImage | None:
        for image in self._images:
            if image.start <= point < image.end:
                return image
        return None

    def erase(self) -> None:
        """Discard all text, spans and images and start a new generation."""
        self._text = ""
        self._point = 0
        self._images = []
        self.spans.clear()
        self._generation += 1
        self.modified = True

    def set_unmodified(self) -> None:
        self.modified = False

    def kill(self) -> None:
        self.erase()
        self._alive = False


class Workspace:
    """The set of named documents, with one of them displayed."""

    _documents: dict[str, Document]
    current: Document | None
    supports_images: bool

    def __init__(self, *, supports_images: bool = True) -> None:
        self._documents = {}
        self.current = None
        self.supports_images = supports_images

    def get(self, name: str) -> Document | None:
        return self._documents.get(name)

    def get_or_create(self, name: str, *, mode: str = "org") -> Document:
        document = self._documents.get(name)
        if document is None:
            document = Document(name, mode=mode, supports_images=self.supports_images)
            self._documents[name] = document
            logger.debug(f"Created document {name}")
        return document

    def display(self, document: Document) -> Document:
        self.current = document
        return document

    def close(self, name: str) -> None:
        document = self._documents.pop(name, None)
        if document is None:
            return
        document.kill()
        if self.current is document:
            self.current = None
