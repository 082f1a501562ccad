"""
Text clean-up applied to every field pulled out of a scripture CSV.

The steps run in a fixed order:
  1. drop BOMs and replacement glyphs left by a bad decode
  2. repair UTF-8 text that was decoded as Latin-1 (mojibake)
  3. trim, strip one layer of surrounding quotes, unescape quotes,
     straighten curly quotes
  4. optionally unwrap bracketed editorial insertions: [word] -> word
  5. collapse whitespace

Mojibake repair is a heuristic. It only runs when marker characters are
present and silently keeps the original text when the round trip fails.
"""
import re

BOM = '\ufeff'
JUNK_GLYPHS = (
    BOM,
    '\ufffd',      # replacement character from errors='replace'
    '\u00ef\u00bb\u00bf',  # UTF-8 BOM decoded as Latin-1
    '\u200b',      # zero width space
)

# Lead bytes of 2/3 byte UTF-8 sequences rendered as Latin-1 / cp1252
MOJIBAKE_MARKERS = ('Ã', 'Â', 'Ä', 'Å', 'Ð', 'Ø', 'â€')
MOJIBAKE_ENCODINGS = ('latin-1', 'cp1252')

CURLY_QUOTES = {
    '“': '"',
    '”': '"',
    '„': '"',
    '‘': "'",
    '’': "'",
}

BRACKETED_RE = re.compile(r"\[([^\[\]]*)\]")
SPACE_RE = re.compile(r"\s+")


def strip_junk(text: str) -> str:
    for glyph in JUNK_GLYPHS:
        text = text.replace(glyph, '')
    return text


def looks_like_mojibake(text: str) -> bool:
    return any(marker in text for marker in MOJIBAKE_MARKERS)


def repair_mojibake(text: str) -> str:
    if not looks_like_mojibake(text):
        return text
    for encoding in MOJIBAKE_ENCODINGS:
        try:
            return text.encode(encoding).decode('utf-8')
        except (UnicodeEncodeError, UnicodeDecodeError):
            continue
    return text


def clean_quotes(text: str) -> str:
    t = text.strip()
    if len(t) >= 2 and t[0] == '"' and t[-1] == '"':
        t = t[1:-1]
    t = t.replace('""', '"').replace('\\"', '"')
    for curly, straight in CURLY_QUOTES.items():
        t = t.replace(curly, straight)
    return t


def unwrap_brackets(text: str) -> str:
    return BRACKETED_RE.sub(r"\1", text)


def collapse_whitespace(text: str) -> str:
    return SPACE_RE.sub(' ', text).strip()


class TextNormalizer:
    """Default normalization strategy. Any callable str -> str can replace it."""

    def __init__(self, unwrap_brackets=False, repair_mojibake=True):
        self.unwrap_brackets = unwrap_brackets
        self.repair_mojibake = repair_mojibake

    def __call__(self, raw):
        return self.normalize(raw)

    def normalize(self, raw):
        if raw is None:
            return ''
        text = strip_junk(raw)
        if self.repair_mojibake:
            text = repair_mojibake(text)
        text = clean_quotes(text)
        if self.unwrap_brackets:
            text = unwrap_brackets(text)
        return collapse_whitespace(text)

    def __repr__(self):
        return f'<TextNormalizer unwrap_brackets={self.unwrap_brackets} repair_mojibake={self.repair_mojibake}>'


_default = TextNormalizer()


def normalize(raw, unwrap_brackets=False):
    """Normalize a single field with the default strategy."""
    if unwrap_brackets:
        return TextNormalizer(unwrap_brackets=True).normalize(raw)
    return _default.normalize(raw)
