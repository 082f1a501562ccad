"""
Storage gateway used by the import pipeline.

All reads and writes the pipeline does go through here, so the resolver
and the upsert engine only deal in plain ids, tuples and dicts. Writes are
issued in bulk: one statement (or one ORM flush) per table per call.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import insert, update, func

from models import Book, BookName, Chapter, Verse, VerseTranslation, ImportRun

logger = logging.getLogger(__name__)

# Keep IN (...) lists well below driver parameter limits
IN_CHUNK_SIZE = 500


def chunked(items, size=IN_CHUNK_SIZE):
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ScriptureStore:
    def __init__(self, session):
        self.session = session

    # --- hierarchy reads ---

    def book_ids(self, work):
        """{book_number: book_id} for every book of a work."""
        rows = self.session.query(Book.id, Book.book_number).filter(Book.work == work).all()
        return {book_number: book_id for book_id, book_number in rows}

    def named_book_ids(self, work, lang):
        """Ids of books of a work that already carry a name in ``lang``."""
        rows = (
            self.session.query(BookName.book_id)
            .join(Book, Book.id == BookName.book_id)
            .filter(Book.work == work, BookName.lang == lang)
            .all()
        )
        return {book_id for (book_id,) in rows}

    def chapter_ids(self, book_ids):
        """{(book_id, chapter_number): chapter_id} for the given books."""
        found = {}
        for chunk in chunked(book_ids):
            rows = (
                self.session.query(Chapter.id, Chapter.book_id, Chapter.chapter_number)
                .filter(Chapter.book_id.in_(chunk))
                .all()
            )
            for chapter_id, book_id, chapter_number in rows:
                found[(book_id, chapter_number)] = chapter_id
        return found

    def verse_ids(self, work, book_numbers):
        """{(work, book, chapter, verse): verse_id} for the given book numbers."""
        found = {}
        for chunk in chunked(book_numbers):
            rows = (
                self.session.query(Verse.id, Verse.book_number, Verse.chapter_number, Verse.verse_number)
                .filter(Verse.work == work, Verse.book_number.in_(chunk))
                .all()
            )
            for verse_id, book_number, chapter_number, verse_number in rows:
                found[(work, book_number, chapter_number, verse_number)] = verse_id
        return found

    # --- hierarchy writes ---

    def _insert_objects(self, objects):
        self.session.add_all(objects)
        self.session.flush()
        return [obj.id for obj in objects]

    def insert_books(self, rows):
        return self._insert_objects([Book(**row) for row in rows])

    def insert_book_names(self, rows):
        if rows:
            self.session.execute(insert(BookName), rows)

    def insert_chapters(self, rows):
        return self._insert_objects([Chapter(**row) for row in rows])

    def insert_verses(self, rows):
        return self._insert_objects([Verse(**row) for row in rows])

    # --- translations ---

    def translations_for(self, translation_code, verse_ids):
        """{verse_id: (translation_id, text)} for one translation code."""
        found = {}
        for chunk in chunked(verse_ids):
            rows = (
                self.session.query(VerseTranslation.id, VerseTranslation.verse_id, VerseTranslation.text)
                .filter(VerseTranslation.translation_code == translation_code,
                        VerseTranslation.verse_id.in_(chunk))
                .all()
            )
            for translation_id, verse_id, text in rows:
                found[verse_id] = (translation_id, text)
        return found

    def count_translations(self, translation_code):
        return (
            self.session.query(func.count(VerseTranslation.id))
            .filter(VerseTranslation.translation_code == translation_code)
            .scalar()
        )

    def delete_translations(self, translation_code):
        deleted = (
            self.session.query(VerseTranslation)
            .filter(VerseTranslation.translation_code == translation_code)
            .delete(synchronize_session=False)
        )
        logger.info(f"Deleted {deleted} translations for {translation_code}")
        return deleted

    def insert_translations(self, rows):
        if rows:
            self.session.execute(insert(VerseTranslation), rows)

    def update_translations(self, rows):
        # ORM bulk UPDATE by primary key: every dict carries 'id'
        if rows:
            self.session.execute(update(VerseTranslation), rows)

    # --- run history ---

    def latest_run(self, translation_code):
        return (
            self.session.query(ImportRun)
            .filter(ImportRun.translation_code == translation_code)
            .order_by(ImportRun.id.desc())
            .first()
        )

    def start_run(self, options):
        run = ImportRun(
            translation_code=options.translation_code,
            lang=options.lang,
            source=options.source,
            status=ImportRun.STATUS_RUNNING,
            forced=options.force,
        )
        self.session.add(run)
        self.session.flush()
        return run.id

    def finish_run(self, run_id, status, result):
        run = self.session.get(ImportRun, run_id)
        if run is None:
            logger.warning(f"Import run {run_id} vanished before it could be closed")
            return
        run.status = status
        run.books_created = result.books_created
        run.chapters_created = result.chapters_created
        run.verses_created = result.verses_created
        run.translations_inserted = result.translations_inserted
        run.translations_updated = result.translations_updated
        run.error_count = len(result.errors)
        run.message = result.message
        run.finished_at = datetime.now(timezone.utc)
