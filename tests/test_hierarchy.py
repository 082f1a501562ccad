import unittest

from importers.dialect import SourceRow
from importers.hierarchy import HierarchyPlan, HierarchyResolver
from importers.store import ScriptureStore
from models import Book, BookName, Chapter, Testament, Verse, Work
from tests.support import ScriptureDbTestCase


def row(book, chapter, verse, name='', text='text'):
    return SourceRow(line_number=0, book_number=book, chapter_number=chapter, verse_number=verse,
                     text=text, book_name=name)


GENESIS_AND_MATTHEW = [
    row(1, 1, 1, 'Genesis'),
    row(1, 1, 2, 'Gen.'),
    row(1, 2, 1, 'Genesis'),
    row(40, 1, 1, 'Matthew'),
]


class TestHierarchyPlan(unittest.TestCase):
    def test_stage_deduplicates_and_first_name_wins(self):
        plan = HierarchyPlan()
        plan.stage_book(1)
        plan.stage_book(1)
        plan.stage_name(1, '')
        plan.stage_name(1, 'Genesis')
        plan.stage_name(1, 'Gen.')
        plan.stage_chapter(1, 1)
        plan.stage_chapter(1, 1)
        self.assertEqual(plan.books, [1])
        self.assertEqual(plan.names, {1: 'Genesis'})
        self.assertEqual(plan.chapters, [(1, 1)])
        self.assertFalse(plan.is_empty)
        self.assertTrue(HierarchyPlan().is_empty)


class TestHierarchyResolver(ScriptureDbTestCase):
    def setUp(self):
        super().setUp()
        self.session = self.Session()
        self.store = ScriptureStore(self.session)

    def tearDown(self):
        self.session.close()

    def resolver(self, work=Work.BIBLE, lang='en'):
        return HierarchyResolver(self.store, work, lang)

    def stage_and_flush(self, resolver, rows):
        plan = resolver.stage(rows)
        resolver.flush(plan)
        self.session.commit()
        return plan

    def test_stage_new_batch(self):
        plan = self.resolver().stage(GENESIS_AND_MATTHEW)
        self.assertEqual(plan.books, [1, 40])
        self.assertEqual(plan.names, {1: 'Genesis', 40: 'Matthew'})
        self.assertEqual(plan.chapters, [(1, 1), (1, 2), (40, 1)])
        self.assertEqual(plan.verses, [(1, 1, 1), (1, 1, 2), (1, 2, 1), (40, 1, 1)])

    def test_flush_creates_each_node_once_and_resolves(self):
        resolver = self.resolver()
        self.stage_and_flush(resolver, GENESIS_AND_MATTHEW)

        self.assertEqual(self.session.query(Book).count(), 2)
        self.assertEqual(self.session.query(Chapter).count(), 3)
        self.assertEqual(self.session.query(Verse).count(), 4)
        verse = self.session.get(Verse, resolver.resolve(GENESIS_AND_MATTHEW[1]))
        self.assertEqual((verse.book_number, verse.chapter_number, verse.verse_number), (1, 1, 2))
        self.assertEqual(verse.chapter_id, resolver.chapter_id(1, 1))

        # Same rows again: everything is cached
        self.assertTrue(resolver.stage(GENESIS_AND_MATTHEW).is_empty)

    def test_testament_assigned_from_book_number(self):
        self.stage_and_flush(self.resolver(), [row(39, 1, 1, 'Malachi'), row(40, 1, 1, 'Matthew')])
        testaments = dict(self.session.query(Book.book_number, Book.testament).all())
        self.assertEqual(testaments, {39: Testament.OLD, 40: Testament.NEW})

    def test_new_resolver_preloads_existing_nodes(self):
        self.stage_and_flush(self.resolver(), GENESIS_AND_MATTHEW)

        plan = self.resolver().stage(GENESIS_AND_MATTHEW + [row(1, 1, 3, 'Genesis')])
        self.assertEqual(plan.books, [])
        self.assertEqual(plan.chapters, [])
        self.assertEqual(plan.verses, [(1, 1, 3)])
        self.assertEqual(plan.names, {})

    def test_second_language_only_adds_names(self):
        self.stage_and_flush(self.resolver(lang='en'), GENESIS_AND_MATTHEW)
        turkish = [row(1, 1, 1, 'Yaratılış'), row(40, 1, 1, 'Matta')]
        plan = self.stage_and_flush(self.resolver(lang='tr'), turkish)

        self.assertEqual(plan.names, {1: 'Yaratılış', 40: 'Matta'})
        self.assertEqual(plan.books + plan.chapters + plan.verses, [])
        self.assertEqual(self.session.query(BookName).filter_by(lang='tr').count(), 2)
        self.assertEqual(self.session.query(BookName).filter_by(lang='en').count(), 2)

    def test_works_do_not_share_books(self):
        self.stage_and_flush(self.resolver(Work.BIBLE), [row(1, 1, 1, 'Genesis')])
        quran = self.resolver(Work.QURAN, lang='ar')
        plan = self.stage_and_flush(quran, [row(1, 1, 1, 'الفاتحة')])

        self.assertEqual(plan.books, [1])
        self.assertEqual(self.session.query(Book).count(), 2)
        book = self.session.get(Book, quran.book_id(1))
        self.assertEqual(book.work, Work.QURAN)
        self.assertIsNone(book.testament)

    def test_resolve_unstaged_row(self):
        with self.assertRaises(KeyError):
            self.resolver().resolve(row(1, 1, 1))
