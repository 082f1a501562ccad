import io
import unittest

from sqlalchemy.pool import StaticPool

from database import init_db, make_session_factory as make_factory
from importers import run_import
from models import Book, BookName, Chapter, Verse, VerseTranslation

LEGACY_PREAMBLE = [
    "Kutsal Kitap - Yeni Çeviri",
    "Bu metin yalnızca kişisel kullanım içindir.",
    "Kaynak: Kitab-ı Mukaddes Şirketi",
    "",
    "Sütunlar: ayet;kitap;kitap no;bölüm;ayet no;metin",
    "-----",
    "",
]

# (source_key, book name, book, chapter, verse, text)
TURKISH_ROWS = [
    ("1001001", "Yaratılış", 1, 1, 1, "Başlangıçta Tanrı göğü ve yeri yarattı."),
    ("1001002", "Yaratılış", 1, 1, 2, "Yer boştu, yeryüzü şekilsizdi."),
    ("1001003", "Yaratılış", 1, 1, 3, "Tanrı, \"Işık olsun\" diye buyurdu."),
    ("1002001", "Yaratılış", 1, 2, 1, "Gök, yer ve bunlardaki her şey tamamlandı."),
    ("2001001", "Mısır'dan Çıkış", 2, 1, 1, "Yakup'la birlikte Mısır'a gidenler."),
    ("40001001", "Matta", 40, 1, 1, "İbrahim oğlu, Davut oğlu İsa Mesih'in soy kaydı."),
]

ENGLISH_ROWS = [
    ("1001001", "Genesis", 1, 1, 1, "In the beginning God created the heaven and the earth."),
    ("1001002", "Genesis", 1, 1, 2, "And the earth was without form, and void."),
    ("1001003", "Genesis", 1, 1, 3, "And God said, Let there be light: and there was light."),
    ("1002001", "Genesis", 1, 2, 1, "Thus the heavens and the earth were finished."),
    ("2001001", "Exodus", 2, 1, 1, "Now these are the names of the children of Israel."),
    ("40001001", "Matthew", 40, 1, 1, "The book of the generation of Jesus Christ."),
]


def quote(text):
    return '"' + text.replace('"', '""') + '"'


def csv_line(row, delimiter=';'):
    key, name, book, chapter, verse, text = row
    return delimiter.join([str(key), name, str(book), str(chapter), str(verse), quote(text)])


def legacy_csv(rows, preamble=LEGACY_PREAMBLE):
    lines = list(preamble) + [csv_line(row) for row in rows]
    return ("\n".join(lines) + "\n").encode('utf-8')


def plain_csv(rows, delimiter=';'):
    return ("\n".join(csv_line(row, delimiter) for row in rows) + "\n").encode('utf-8')


def make_session_factory():
    # One shared connection so every session sees the same in-memory database
    factory = make_factory("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(factory.kw["bind"])
    return factory


class ScriptureDbTestCase(unittest.TestCase):
    """Each test gets its own in-memory database."""

    def setUp(self):
        self.Session = make_session_factory()

    def import_bytes(self, data, session_factory=None, **options):
        options.setdefault('lang', 'tr')
        options.setdefault('translation_code', 'TR_TBS')
        options.setdefault('source', 'BibleSuperSearch')
        return run_import(io.BytesIO(data), session_factory=session_factory or self.Session, **options)

    def import_legacy(self, rows, **options):
        options.setdefault('skip_lines_before_header', len(LEGACY_PREAMBLE))
        return self.import_bytes(legacy_csv(rows), **options)

    def count(self, model, session_factory=None, **filters):
        session = (session_factory or self.Session)()
        try:
            return session.query(model).filter_by(**filters).count()
        finally:
            session.close()

    def translations(self, translation_code, session_factory=None):
        """[(book, chapter, verse, text, source_key, verse_range)] in verse order."""
        session = (session_factory or self.Session)()
        try:
            rows = (
                session.query(Verse.book_number, Verse.chapter_number, Verse.verse_number,
                              VerseTranslation.text, VerseTranslation.source_key, VerseTranslation.verse_range)
                .join(VerseTranslation, VerseTranslation.verse_id == Verse.id)
                .filter(VerseTranslation.translation_code == translation_code)
                .order_by(Verse.book_number, Verse.chapter_number, Verse.verse_number)
                .all()
            )
            return [tuple(row) for row in rows]
        finally:
            session.close()

    def hierarchy_counts(self, session_factory=None):
        return (
            self.count(Book, session_factory),
            self.count(Chapter, session_factory),
            self.count(Verse, session_factory),
        )

    def book_names(self, book_number):
        session = self.Session()
        try:
            rows = (
                session.query(BookName.lang, BookName.name)
                .join(Book, Book.id == BookName.book_id)
                .filter(Book.book_number == book_number)
                .order_by(BookName.lang)
                .all()
            )
            return [tuple(row) for row in rows]
        finally:
            session.close()
