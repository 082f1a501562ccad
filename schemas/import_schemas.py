import codecs

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional

from config import Config
from models.scripture import Work

# Delimiters people type on the command line or in a form field
DELIMITER_ALIASES = {
    'tab': '\t',
    '\\t': '\t',
    'semicolon': ';',
    'comma': ',',
    'pipe': '|',
}


class ImportOptions(BaseModel):
    """Everything one import run needs besides the source stream itself."""
    model_config = ConfigDict(frozen=True)

    lang: str = Field(..., min_length=1, max_length=16)
    translation_code: str = Field(..., min_length=1, max_length=64)
    source: str = Field('', max_length=100)
    work: Work = Work.BIBLE

    force: bool = False
    resume: bool = False

    has_header: bool = False
    header_marker: Optional[str] = None
    delimiter: str = ';'
    quotechar: str = '"'
    escapechar: Optional[str] = None
    encoding: str = 'utf-8-sig'
    skip_lines_before_header: int = Field(0, ge=0)

    unwrap_brackets: bool = False
    batch_size: int = Field(default_factory=lambda: Config.IMPORT_BATCH_SIZE, ge=1)

    @field_validator('lang', 'translation_code', 'source', 'encoding', mode='before')
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator('delimiter', mode='before')
    @classmethod
    def resolve_delimiter_alias(cls, value):
        if isinstance(value, str):
            # Only aliases are looked up; a literal tab must survive whitespace stripping
            return DELIMITER_ALIASES.get(value.strip().lower(), value)
        return value

    @field_validator('delimiter', 'quotechar')
    @classmethod
    def single_character(cls, value):
        if len(value) != 1:
            raise ValueError('must be a single character')
        return value

    @field_validator('escapechar', 'header_marker', mode='before')
    @classmethod
    def blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator('escapechar')
    @classmethod
    def single_escape_character(cls, value):
        if value is not None and len(value) != 1:
            raise ValueError('must be a single character')
        return value

    @field_validator('encoding')
    @classmethod
    def known_encoding(cls, value):
        try:
            codecs.lookup(value)
        except LookupError:
            raise ValueError(f"unknown encoding '{value}'")
        return value

    @model_validator(mode='after')
    def distinct_dialect_characters(self):
        special = [c for c in (self.delimiter, self.quotechar, self.escapechar) if c is not None]
        if len(set(special)) != len(special):
            raise ValueError('delimiter, quotechar and escapechar must all differ')
        return self

    @field_validator('work', mode='before')
    @classmethod
    def work_case_insensitive(cls, value):
        if isinstance(value, str):
            for work in Work:
                if work.value.lower() == value.strip().lower():
                    return work
        return value


class ImportResult(BaseModel):
    success: bool = False
    state: str = 'NotStarted'
    message: str = ''
    translation_code: Optional[str] = None

    books_created: int = 0
    chapters_created: int = 0
    verses_created: int = 0
    translations_inserted: int = 0
    translations_updated: int = 0
    translations_unchanged: int = 0
    translations_deleted: int = 0
    rows_read: int = 0

    errors: List[str] = Field(default_factory=list)

    @property
    def translations_written(self):
        return self.translations_inserted + self.translations_updated
