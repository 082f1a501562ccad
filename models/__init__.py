# This file makes the models directory a Python package
from .scripture import Work, Testament, Book, BookName, Chapter, Verse, VerseTranslation, testament_for
from .import_run import ImportRun, ImportLock

__all__ = [
    'Work',
    'Testament',
    'Book',
    'BookName',
    'Chapter',
    'Verse',
    'VerseTranslation',
    'testament_for',
    'ImportRun',
    'ImportLock',
]
