# models/scripture.py
import enum
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from database import Base


class Work(str, enum.Enum):
    BIBLE = 'Bible'
    QURAN = 'Quran'


class Testament(str, enum.Enum):
    OLD = 'Old'
    NEW = 'New'


# Bible book numbers 1..39 are Old Testament, 40..66 New Testament
OLD_TESTAMENT_LAST_BOOK = 39


def testament_for(work, book_number):
    """Testament for a book, or None for works that have no testaments."""
    if work != Work.BIBLE:
        return None
    return Testament.OLD if book_number <= OLD_TESTAMENT_LAST_BOOK else Testament.NEW


class Book(Base):
    __tablename__ = 'books'
    __table_args__ = (
        UniqueConstraint('work', 'book_number', name='uq_books_work_book_number'),
    )

    id = Column(Integer, primary_key=True, index=True)
    work = Column(Enum(Work, native_enum=False, length=16), nullable=False, default=Work.BIBLE)
    book_number = Column(Integer, nullable=False)  # Bible: 1..66, Quran: 1..114
    testament = Column(Enum(Testament, native_enum=False, length=8), nullable=True)  # Bible only

    names = relationship("BookName", back_populates="book", cascade="all, delete-orphan")
    chapters = relationship("Chapter", back_populates="book", cascade="all, delete-orphan",
                            order_by="Chapter.chapter_number")

    def __repr__(self):
        return f'<Book {self.work.value} #{self.book_number} (ID: {self.id})>'


class BookName(Base):
    __tablename__ = 'book_names'
    __table_args__ = (
        UniqueConstraint('book_id', 'lang', name='uq_book_names_book_lang'),
        Index('ix_book_names_lang_name', 'lang', 'name'),
    )

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey('books.id', ondelete='CASCADE'), nullable=False, index=True)
    lang = Column(String(16), nullable=False)    # "tr", "en", "ar"
    name = Column(String(200), nullable=False)   # Yaratılış / Genesis / التكوين

    book = relationship("Book", back_populates="names")

    def __repr__(self):
        return f'<BookName {self.book_id} [{self.lang}] {self.name}>'


class Chapter(Base):
    __tablename__ = 'chapters'
    __table_args__ = (
        UniqueConstraint('book_id', 'chapter_number', name='uq_chapters_book_chapter'),
    )

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey('books.id', ondelete='CASCADE'), nullable=False, index=True)
    chapter_number = Column(Integer, nullable=False)

    book = relationship("Book", back_populates="chapters")
    verses = relationship("Verse", back_populates="chapter", cascade="all, delete-orphan",
                          order_by="Verse.verse_number")

    def __repr__(self):
        return f'<Chapter {self.book_id}:{self.chapter_number} (ID: {self.id})>'


class Verse(Base):
    __tablename__ = 'verses'
    __table_args__ = (
        UniqueConstraint('work', 'book_number', 'chapter_number', 'verse_number',
                         name='uq_verses_work_book_chapter_verse'),
    )

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey('chapters.id', ondelete='CASCADE'), nullable=False, index=True)

    # Denormalized so a verse can be looked up without joining chapters/books
    work = Column(Enum(Work, native_enum=False, length=16), nullable=False, default=Work.BIBLE)
    book_number = Column(Integer, nullable=False)
    chapter_number = Column(Integer, nullable=False)
    verse_number = Column(Integer, nullable=False)

    chapter = relationship("Chapter", back_populates="verses")
    translations = relationship("VerseTranslation", back_populates="verse", cascade="all, delete-orphan")

    def __repr__(self):
        return f'<Verse {self.work.value} {self.book_number} {self.chapter_number}:{self.verse_number}>'


class VerseTranslation(Base):
    __tablename__ = 'verse_translations'
    __table_args__ = (
        UniqueConstraint('verse_id', 'translation_code', name='uq_verse_translations_verse_code'),
        Index('ix_verse_translations_lang_code', 'lang', 'translation_code'),
    )

    id = Column(Integer, primary_key=True, index=True)
    verse_id = Column(Integer, ForeignKey('verses.id', ondelete='CASCADE'), nullable=False, index=True)

    lang = Column(String(16), nullable=False)
    translation_code = Column(String(64), nullable=False)  # "TR_TBS", "EN_KJV", "AR_TANZIL"
    text = Column(Text, nullable=False)

    source = Column(String(100), nullable=False, default='')      # "BibleSuperSearch", "Tanzil", etc.
    source_key = Column(String(100), nullable=False, default='')  # row id in the original dataset
    verse_range = Column(String(32), nullable=True)               # "14-15" when a row spans verses

    verse = relationship("Verse", back_populates="translations")

    def __repr__(self):
        return f'<VerseTranslation {self.translation_code} verse={self.verse_id}>'
