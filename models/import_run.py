# models/import_run.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from database import Base


class ImportRun(Base):
    """One execution of the import pipeline for a translation code."""
    __tablename__ = 'import_runs'

    STATUS_RUNNING = 'running'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'

    id = Column(Integer, primary_key=True, index=True)
    translation_code = Column(String(64), nullable=False, index=True)
    lang = Column(String(16), nullable=False)
    source = Column(String(100), nullable=False, default='')
    status = Column(String(16), nullable=False, default=STATUS_RUNNING)
    forced = Column(Boolean, nullable=False, default=False)

    books_created = Column(Integer, nullable=False, default=0)
    chapters_created = Column(Integer, nullable=False, default=0)
    verses_created = Column(Integer, nullable=False, default=0)
    translations_inserted = Column(Integer, nullable=False, default=0)
    translations_updated = Column(Integer, nullable=False, default=0)
    error_count = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), server_default=func.now())
    finished_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f'<ImportRun {self.id} {self.translation_code} {self.status}>'


class ImportLock(Base):
    """Advisory lock row; its primary key serializes imports per translation code."""
    __tablename__ = 'import_locks'

    translation_code = Column(String(64), primary_key=True)
    owner = Column(String(200), nullable=False)
    acquired_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f'<ImportLock {self.translation_code} held by {self.owner}>'
