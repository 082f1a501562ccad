"""
CSV dialect handling for scripture exports.

A ``Dialect`` describes one source layout (delimiter, quoting, preamble,
header convention). ``DialectReader`` turns a byte stream in that layout
into ``SourceRow`` objects. Rows that cannot be parsed are collected in
``reader.errors`` instead of stopping the read.
"""
import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from importers.errors import HeaderNotFoundError, ImportConfigurationError, RowParseError
from importers.normalizer import strip_junk, clean_quotes, collapse_whitespace

logger = logging.getLogger(__name__)

SOURCE_KEY = 'source_key'
BOOK_NAME = 'book_name'
BOOK_NUMBER = 'book_number'
CHAPTER = 'chapter'
VERSE = 'verse'
TEXT = 'text'

# [verseId, bookName, bookNumber, chapterNumber, verseNumber, text]
LEGACY_COLUMNS = (
    (SOURCE_KEY, 0),
    (BOOK_NAME, 1),
    (BOOK_NUMBER, 2),
    (CHAPTER, 3),
    (VERSE, 4),
    (TEXT, 5),
)

HEADER_ALIASES = {
    SOURCE_KEY: ('verse id', 'verseid', 'verse_id', 'id', 'key'),
    BOOK_NAME: ('book name', 'bookname', 'book_name', 'book'),
    BOOK_NUMBER: ('book number', 'booknumber', 'book_number', 'book no', 'book_no', 'b'),
    CHAPTER: ('chapter', 'chapter number', 'chapter_number', 'c'),
    VERSE: ('verse', 'verse number', 'verse_number', 'v'),
    TEXT: ('text', 'verse text', 'verse_text', 't', 'content'),
}
REQUIRED_FIELDS = (BOOK_NUMBER, CHAPTER, VERSE, TEXT)

# Largest value an Integer column holds on every supported database
MAX_NUMBER = 2 ** 31 - 1

VERSE_RANGE_RE = re.compile(r"^(\d+)\s*[-–]\s*(\d+)$")

# Option presets for the layouts seen in the wild
LAYOUT_PRESETS = {
    'legacy': {'delimiter': ';', 'has_header': False, 'header_marker': None, 'skip_lines_before_header': 7},
    'header': {'delimiter': ';', 'has_header': True, 'header_marker': 'Verse ID'},
    'generic': {},
}


def options_for_layout(layout, **overrides):
    """Merge a layout preset with caller-supplied values (None means 'not given')."""
    if layout not in LAYOUT_PRESETS:
        raise ImportConfigurationError(f"Unknown layout '{layout}', expected one of {sorted(LAYOUT_PRESETS)}")
    options = dict(LAYOUT_PRESETS[layout])
    options.update({k: v for k, v in overrides.items() if v is not None})
    return options


@dataclass(frozen=True)
class Dialect:
    delimiter: str = ';'
    quotechar: str = '"'
    escapechar: Optional[str] = None
    has_header: bool = False
    header_marker: Optional[str] = None
    skip_lines: int = 0
    encoding: str = 'utf-8-sig'
    columns: Tuple[Tuple[str, int], ...] = LEGACY_COLUMNS

    @property
    def header_mode(self):
        return self.has_header or bool(self.header_marker)

    @classmethod
    def from_options(cls, options):
        return cls(
            delimiter=options.delimiter,
            quotechar=options.quotechar,
            escapechar=options.escapechar,
            has_header=options.has_header,
            header_marker=options.header_marker,
            skip_lines=options.skip_lines_before_header,
            encoding=options.encoding,
        )


LEGACY_DIALECT = Dialect(delimiter=';', skip_lines=7)
HEADER_MARKED_DIALECT = Dialect(delimiter=';', has_header=True, header_marker='Verse ID')


@dataclass
class SourceRow:
    line_number: int
    book_number: int
    chapter_number: int
    verse_number: int
    text: str
    book_name: str = ''
    source_key: str = ''
    verse_range: Optional[str] = None


def _header_key(cell):
    return collapse_whitespace(clean_quotes(strip_junk(cell))).lower()


def map_header(header: List[str]) -> Dict[str, int]:
    """Locate each logical column in a header row by name."""
    keys = [_header_key(cell) for cell in header]
    mapping = {}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in keys:
                mapping[field] = keys.index(alias)
                break
    missing = [field for field in REQUIRED_FIELDS if field not in mapping]
    if missing:
        raise ImportConfigurationError(f"Header row {header!r} is missing required columns: {', '.join(missing)}")
    return mapping


def parse_number(value, field):
    cleaned = clean_quotes(strip_junk(value)).strip()
    try:
        number = int(cleaned)
    except ValueError:
        raise RowParseError(f"{field} is not a number: {value!r}")
    if number < 1:
        raise RowParseError(f"{field} must be positive: {value!r}")
    if number > MAX_NUMBER:
        raise RowParseError(f"{field} is out of range: {value!r}")
    return number


def parse_verse(value):
    """Return (verse_number, verse_range) for '3' or for combined rows like '14-15'."""
    cleaned = clean_quotes(strip_junk(value)).strip()
    m = VERSE_RANGE_RE.match(cleaned)
    if m:
        first, last = int(m.group(1)), int(m.group(2))
        if first < 1 or last < first or last > MAX_NUMBER:
            raise RowParseError(f"verse range is invalid: {value!r}")
        return first, f"{first}-{last}"
    return parse_number(value, VERSE), None


class LineRecorder:
    """Line iterator for csv.reader that remembers the physical lines of the current record."""

    def __init__(self, lines):
        self._lines = iter(lines)
        self._buffer = []

    def __iter__(self):
        return self

    def __next__(self):
        line = next(self._lines)
        self._buffer.append(line)
        return line

    def take(self):
        raw, self._buffer = ''.join(self._buffer), []
        return raw.rstrip('\r\n')


class DialectReader:
    """Iterate ``SourceRow`` objects out of a byte (or text) stream."""

    def __init__(self, stream, dialect: Dialect):
        self.stream = stream
        self.dialect = dialect
        self.errors: List[RowParseError] = []
        self.header = None
        self.columns: Dict[str, int] = dict(dialect.columns)
        self._text = None
        self._csv = None
        self._lines = None
        self._line_offset = 0
        self._prepared = False

    def _open_text(self):
        if isinstance(self.stream, io.TextIOBase):
            return self.stream
        try:
            return io.TextIOWrapper(self.stream, encoding=self.dialect.encoding, errors='replace', newline='')
        except LookupError:
            raise ImportConfigurationError(f"Unknown encoding: {self.dialect.encoding!r}")

    def _make_csv(self):
        self._lines = LineRecorder(self._text)
        try:
            return csv.reader(
                self._lines,
                delimiter=self.dialect.delimiter,
                quotechar=self.dialect.quotechar,
                escapechar=self.dialect.escapechar,
                doublequote=True,
                strict=True,
            )
        except TypeError as e:
            raise ImportConfigurationError(f"Invalid CSV dialect: {e}")

    def _line_number(self):
        return self._line_offset + self._csv.line_num

    def prepare(self):
        """Skip the preamble and, in header mode, find and map the header row.

        Raises HeaderNotFoundError / ImportConfigurationError before any data
        row is read.
        """
        if self._prepared:
            return self
        self._text = self._open_text()

        for _ in range(self.dialect.skip_lines):
            if not self._text.readline():
                break
            self._line_offset += 1
        if self.dialect.skip_lines:
            logger.debug(f"Skipped {self._line_offset} preamble lines")

        self._csv = self._make_csv()
        if self.dialect.header_mode:
            self.header = self._find_header()
            self.columns = map_header(self.header)
            logger.info(f"Header found on line {self._line_number()}: {self.header}")
        self._prepared = True
        return self

    def _find_header(self):
        marker = self.dialect.header_marker
        wanted = _header_key(marker) if marker else None
        while True:
            try:
                fields = next(self._csv)
            except StopIteration:
                break
            except csv.Error:
                # Preamble junk may not be valid CSV; keep scanning for the header
                continue
            if not fields or not any(f.strip() for f in fields):
                continue
            if wanted is None or _header_key(fields[0]) == wanted:
                return fields
        if marker:
            raise HeaderNotFoundError(f"Header row starting with '{marker}' not found")
        raise HeaderNotFoundError("Header row not found: source has no rows")

    def __iter__(self):
        self.prepare()
        while True:
            self._lines.take()
            try:
                fields = next(self._csv)
            except StopIteration:
                break
            except csv.Error as e:
                self.errors.append(RowParseError(f"malformed CSV ({e})", line_number=self._line_number(),
                                                 raw=self._lines.take()))
                continue

            if not fields or not any(f.strip() for f in fields):
                continue
            try:
                yield self.to_source_row(fields, self._line_number())
            except RowParseError as e:
                e.line_number = self._line_number()
                e.raw = self._lines.take()
                self.errors.append(e)

    def pop_errors(self):
        errors, self.errors = self.errors, []
        return errors

    def close(self):
        # Leave the caller's stream open
        if self._text is not None and self._text is not self.stream:
            self._text.detach()
        self._text = None

    def _fit_fields(self, fields):
        expected = max(self.columns.values()) + 1
        if self.header is not None:
            expected = max(expected, len(self.header))
        if len(fields) < expected:
            raise RowParseError(f"expected {expected} fields, got {len(fields)}")
        text_index = self.columns[TEXT]
        if len(fields) > expected and text_index == expected - 1:
            # Unquoted delimiters inside the text column
            fields = fields[:text_index] + [self.dialect.delimiter.join(fields[text_index:])]
        return fields

    def to_source_row(self, fields, line_number):
        fields = self._fit_fields(fields)
        cols = self.columns
        verse_number, verse_range = parse_verse(fields[cols[VERSE]])
        return SourceRow(
            line_number=line_number,
            book_number=parse_number(fields[cols[BOOK_NUMBER]], BOOK_NUMBER),
            chapter_number=parse_number(fields[cols[CHAPTER]], CHAPTER),
            verse_number=verse_number,
            verse_range=verse_range,
            text=fields[cols[TEXT]],
            book_name=fields[cols[BOOK_NAME]] if BOOK_NAME in cols else '',
            source_key=clean_quotes(strip_junk(fields[cols[SOURCE_KEY]])).strip() if SOURCE_KEY in cols else '',
        )
