"""create_scripture_tables

Revision ID: 3c1f9a7d2b10
Revises:
Create Date: 2026-02-02 01:27:09.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WORK = sa.Enum('BIBLE', 'QURAN', name='work', native_enum=False, length=16)
TESTAMENT = sa.Enum('OLD', 'NEW', name='testament', native_enum=False, length=8)


def upgrade() -> None:
    op.create_table('books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('work', WORK, nullable=False),
        sa.Column('book_number', sa.Integer(), nullable=False),
        sa.Column('testament', TESTAMENT, nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('work', 'book_number', name='uq_books_work_book_number')
    )
    op.create_index(op.f('ix_books_id'), 'books', ['id'], unique=False)

    op.create_table('book_names',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('lang', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_id', 'lang', name='uq_book_names_book_lang')
    )
    op.create_index(op.f('ix_book_names_id'), 'book_names', ['id'], unique=False)
    op.create_index(op.f('ix_book_names_book_id'), 'book_names', ['book_id'], unique=False)
    op.create_index('ix_book_names_lang_name', 'book_names', ['lang', 'name'], unique=False)

    op.create_table('chapters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('chapter_number', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_id', 'chapter_number', name='uq_chapters_book_chapter')
    )
    op.create_index(op.f('ix_chapters_id'), 'chapters', ['id'], unique=False)
    op.create_index(op.f('ix_chapters_book_id'), 'chapters', ['book_id'], unique=False)

    op.create_table('verses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=False),
        sa.Column('work', WORK, nullable=False),
        sa.Column('book_number', sa.Integer(), nullable=False),
        sa.Column('chapter_number', sa.Integer(), nullable=False),
        sa.Column('verse_number', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapters.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('work', 'book_number', 'chapter_number', 'verse_number',
                            name='uq_verses_work_book_chapter_verse')
    )
    op.create_index(op.f('ix_verses_id'), 'verses', ['id'], unique=False)
    op.create_index(op.f('ix_verses_chapter_id'), 'verses', ['chapter_id'], unique=False)

    op.create_table('verse_translations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('verse_id', sa.Integer(), nullable=False),
        sa.Column('lang', sa.String(length=16), nullable=False),
        sa.Column('translation_code', sa.String(length=64), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('source', sa.String(length=100), nullable=False),
        sa.Column('source_key', sa.String(length=100), nullable=False),
        sa.Column('verse_range', sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(['verse_id'], ['verses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('verse_id', 'translation_code', name='uq_verse_translations_verse_code')
    )
    op.create_index(op.f('ix_verse_translations_id'), 'verse_translations', ['id'], unique=False)
    op.create_index(op.f('ix_verse_translations_verse_id'), 'verse_translations', ['verse_id'], unique=False)
    op.create_index('ix_verse_translations_lang_code', 'verse_translations', ['lang', 'translation_code'], unique=False)

    op.create_table('import_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('translation_code', sa.String(length=64), nullable=False),
        sa.Column('lang', sa.String(length=16), nullable=False),
        sa.Column('source', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('forced', sa.Boolean(), nullable=False),
        sa.Column('books_created', sa.Integer(), nullable=False),
        sa.Column('chapters_created', sa.Integer(), nullable=False),
        sa.Column('verses_created', sa.Integer(), nullable=False),
        sa.Column('translations_inserted', sa.Integer(), nullable=False),
        sa.Column('translations_updated', sa.Integer(), nullable=False),
        sa.Column('error_count', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_import_runs_id'), 'import_runs', ['id'], unique=False)
    op.create_index(op.f('ix_import_runs_translation_code'), 'import_runs', ['translation_code'], unique=False)

    op.create_table('import_locks',
        sa.Column('translation_code', sa.String(length=64), nullable=False),
        sa.Column('owner', sa.String(length=200), nullable=False),
        sa.Column('acquired_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('translation_code')
    )


def downgrade() -> None:
    op.drop_table('import_locks')
    op.drop_index(op.f('ix_import_runs_translation_code'), table_name='import_runs')
    op.drop_index(op.f('ix_import_runs_id'), table_name='import_runs')
    op.drop_table('import_runs')
    op.drop_index('ix_verse_translations_lang_code', table_name='verse_translations')
    op.drop_index(op.f('ix_verse_translations_verse_id'), table_name='verse_translations')
    op.drop_index(op.f('ix_verse_translations_id'), table_name='verse_translations')
    op.drop_table('verse_translations')
    op.drop_index(op.f('ix_verses_chapter_id'), table_name='verses')
    op.drop_index(op.f('ix_verses_id'), table_name='verses')
    op.drop_table('verses')
    op.drop_index(op.f('ix_chapters_book_id'), table_name='chapters')
    op.drop_index(op.f('ix_chapters_id'), table_name='chapters')
    op.drop_table('chapters')
    op.drop_index('ix_book_names_lang_name', table_name='book_names')
    op.drop_index(op.f('ix_book_names_book_id'), table_name='book_names')
    op.drop_index(op.f('ix_book_names_id'), table_name='book_names')
    op.drop_table('book_names')
    op.drop_index(op.f('ix_books_id'), table_name='books')
    op.drop_table('books')
