"""
Book -> Chapter -> Verse resolution with an in-memory cache.

For every batch the resolver:
  1. preloads the keys the batch can touch (books of the work once per run,
     chapters/verses of each book number the first time it shows up),
  2. walks the rows in file order and stages whatever is missing,
  3. flushes the staged nodes one hierarchy level at a time, merging the
     generated ids back into the cache before the next level needs them.

A node staged by an earlier row of the batch is reused by later rows, so
nothing is created twice.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from models import testament_for

logger = logging.getLogger(__name__)


@dataclass
class HierarchyPlan:
    """Nodes one batch needs created, keyed by natural keys (ids don't exist yet)."""
    books: List[int] = field(default_factory=list)                     # book numbers
    names: Dict[int, str] = field(default_factory=dict)                # book number -> display name
    chapters: List[Tuple[int, int]] = field(default_factory=list)      # (book, chapter)
    verses: List[Tuple[int, int, int]] = field(default_factory=list)   # (book, chapter, verse)

    _book_set: Set[int] = field(default_factory=set, repr=False)
    _chapter_set: Set[Tuple[int, int]] = field(default_factory=set, repr=False)
    _verse_set: Set[Tuple[int, int, int]] = field(default_factory=set, repr=False)

    def stage_book(self, book_number):
        if book_number not in self._book_set:
            self._book_set.add(book_number)
            self.books.append(book_number)

    def stage_name(self, book_number, name):
        # First non-empty name seen wins
        if name and book_number not in self.names:
            self.names[book_number] = name

    def stage_chapter(self, book_number, chapter_number):
        key = (book_number, chapter_number)
        if key not in self._chapter_set:
            self._chapter_set.add(key)
            self.chapters.append(key)

    def stage_verse(self, book_number, chapter_number, verse_number):
        key = (book_number, chapter_number, verse_number)
        if key not in self._verse_set:
            self._verse_set.add(key)
            self.verses.append(key)

    @property
    def is_empty(self):
        return not (self.books or self.names or self.chapters or self.verses)


class HierarchyResolver:
    def __init__(self, store, work, lang):
        self.store = store
        self.work = work
        self.lang = lang

        self.books: Dict[Tuple, int] = {}               # (work, book_number) -> book_id
        self.named_books: Set[Tuple[int, str]] = set()  # (book_id, lang)
        self.chapters: Dict[Tuple[int, int], int] = {}  # (book_id, chapter_number) -> chapter_id
        self.verses: Dict[Tuple, int] = {}              # (work, book, chapter, verse) -> verse_id

        self._books_loaded = False
        self._loaded_book_numbers: Set[int] = set()

    # --- cache ---

    def preload(self, rows):
        if not self._books_loaded:
            self.books = {(self.work, n): book_id for n, book_id in self.store.book_ids(self.work).items()}
            self.named_books = {(book_id, self.lang) for book_id in self.store.named_book_ids(self.work, self.lang)}
            self._books_loaded = True
            logger.debug(f"Preloaded {len(self.books)} {self.work.value} books")

        wanted = {row.book_number for row in rows} - self._loaded_book_numbers
        # Books that don't exist yet have nothing to preload
        existing = {n for n in wanted if (self.work, n) in self.books}
        if existing:
            book_ids = [self.books[(self.work, n)] for n in existing]
            self.chapters.update(self.store.chapter_ids(book_ids))
            self.verses.update(self.store.verse_ids(self.work, existing))
            logger.debug(f"Preloaded chapters and verses for books {sorted(existing)}")
        self._loaded_book_numbers |= wanted

    def book_id(self, book_number):
        return self.books.get((self.work, book_number))

    def chapter_id(self, book_number, chapter_number):
        book_id = self.book_id(book_number)
        if book_id is None:
            return None
        return self.chapters.get((book_id, chapter_number))

    def verse_id(self, book_number, chapter_number, verse_number):
        return self.verses.get((self.work, book_number, chapter_number, verse_number))

    def resolve(self, row):
        """Verse id for a row whose batch has been staged and flushed."""
        verse_id = self.verse_id(row.book_number, row.chapter_number, row.verse_number)
        if verse_id is None:
            raise KeyError(f"Verse {row.book_number} {row.chapter_number}:{row.verse_number} was never staged")
        return verse_id

    # --- staging ---

    def stage(self, rows):
        self.preload(rows)
        plan = HierarchyPlan()
        for row in rows:
            book_id = self.book_id(row.book_number)
            if book_id is None:
                plan.stage_book(row.book_number)
                plan.stage_name(row.book_number, row.book_name)
            elif (book_id, self.lang) not in self.named_books:
                plan.stage_name(row.book_number, row.book_name)

            if self.chapter_id(row.book_number, row.chapter_number) is None:
                plan.stage_chapter(row.book_number, row.chapter_number)

            if self.verse_id(row.book_number, row.chapter_number, row.verse_number) is None:
                plan.stage_verse(row.book_number, row.chapter_number, row.verse_number)
        return plan

    # --- flushing ---

    def flush(self, plan):
        """Write staged nodes level by level and merge the new ids into the cache."""
        if plan.books:
            ids = self.store.insert_books([
                {'work': self.work, 'book_number': n, 'testament': testament_for(self.work, n)}
                for n in plan.books
            ])
            for n, book_id in zip(plan.books, ids):
                self.books[(self.work, n)] = book_id

        if plan.names:
            rows = [
                {'book_id': self.book_id(n), 'lang': self.lang, 'name': name}
                for n, name in plan.names.items()
            ]
            self.store.insert_book_names(rows)
            self.named_books.update((row['book_id'], self.lang) for row in rows)

        if plan.chapters:
            ids = self.store.insert_chapters([
                {'book_id': self.book_id(b), 'chapter_number': c}
                for b, c in plan.chapters
            ])
            for (b, c), chapter_id in zip(plan.chapters, ids):
                self.chapters[(self.book_id(b), c)] = chapter_id

        if plan.verses:
            ids = self.store.insert_verses([
                {
                    'chapter_id': self.chapter_id(b, c),
                    'work': self.work,
                    'book_number': b,
                    'chapter_number': c,
                    'verse_number': v,
                }
                for b, c, v in plan.verses
            ])
            for (b, c, v), verse_id in zip(plan.verses, ids):
                self.verses[(self.work, b, c, v)] = verse_id

        if not plan.is_empty:
            logger.debug(f"Created {len(plan.books)} books, {len(plan.chapters)} chapters, "
                         f"{len(plan.verses)} verses")
