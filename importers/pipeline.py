"""
Import orchestrator: one source file in, one ImportResult out.

    NotStarted -> ReimportPolicyCheck -> Streaming <-> Flushing -> Completed
                                                                 \\-> Failed

Row-level problems are recorded in ``result.errors`` and never stop the run.
Configuration problems, a blocked duplicate run, a held lock and storage
errors end it in Failed. Batches committed before a storage error stay
committed; re-running with ``resume=True`` fills in whatever is missing.
"""
import enum
import io
import logging
from dataclasses import replace
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from database import SessionLocal
from importers.dialect import Dialect, DialectReader
from importers.errors import ScriptureImportError, SourceNotFoundError, DuplicateImportError, RowParseError
from importers.hierarchy import HierarchyResolver
from importers.locking import import_lock
from importers.normalizer import TextNormalizer
from importers.store import ScriptureStore
from importers.translations import TranslationUpserter
from models import BookName, ImportRun, VerseTranslation
from schemas.import_schemas import ImportOptions, ImportResult

logger = logging.getLogger(__name__)

BOOK_NAME_LENGTH = BookName.__table__.c.name.type.length
SOURCE_KEY_LENGTH = VerseTranslation.__table__.c.source_key.type.length


class ImportState(str, enum.Enum):
    NOT_STARTED = 'NotStarted'
    REIMPORT_POLICY_CHECK = 'ReimportPolicyCheck'
    STREAMING = 'Streaming'
    FLUSHING = 'Flushing'
    COMPLETED = 'Completed'
    FAILED = 'Failed'


def open_source(source):
    """Return (binary_or_text_stream, owned) for a path, bytes or an open stream."""
    if source is None:
        raise SourceNotFoundError("No CSV source provided")
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source), True
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_file():
            raise SourceNotFoundError(f"CSV file not found: {path}")
        return open(path, 'rb'), True
    if hasattr(source, 'read'):
        return source, False
    raise SourceNotFoundError(f"Unsupported CSV source: {type(source).__name__}")


class ImportPipeline:
    def __init__(self, options: ImportOptions, session_factory=None, normalizer=None, lock_owner=None):
        self.options = options
        self.session_factory = session_factory or SessionLocal
        self.normalize_text = normalizer or TextNormalizer(unwrap_brackets=options.unwrap_brackets)
        self.normalize_name = TextNormalizer()
        self.lock_owner = lock_owner
        self.dialect = Dialect.from_options(options)
        self.state = ImportState.NOT_STARTED
        self.result = ImportResult(translation_code=options.translation_code, state=self.state.value)

    def _transition(self, state):
        if state != self.state:
            logger.debug(f"{self.options.translation_code}: {self.state.value} -> {state.value}")
        self.state = state
        self.result.state = state.value

    def _fail(self, message):
        self.result.success = False
        self.result.message = message
        self._transition(ImportState.FAILED)
        logger.warning(f"Import of {self.options.translation_code} failed: {message}")
        return self.result

    def run(self, source):
        code = self.options.translation_code
        logger.info(f"Starting import of {code} ({self.options.lang}, work={self.options.work.value})")

        try:
            stream, owned = open_source(source)
        except SourceNotFoundError as e:
            return self._fail(str(e))

        reader = DialectReader(stream, self.dialect)
        session = self.session_factory()
        try:
            reader.prepare()
            with import_lock(session, code, self.lock_owner):
                store = ScriptureStore(session)
                self._check_reimport_policy(store)
                run_id = store.start_run(self.options)
                session.commit()
                try:
                    self._stream(reader, store)
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"Storage error while importing {code}: {e}", exc_info=True)
                    self._fail(f"Import failed while writing a batch: {e}. "
                               f"Committed batches were kept; re-run with resume to continue.")
                else:
                    self._complete()
                status = ImportRun.STATUS_COMPLETED if self.result.success else ImportRun.STATUS_FAILED
                store.finish_run(run_id, status, self.result)
                session.commit()
        except ScriptureImportError as e:
            self._fail(str(e))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Storage error during import of {code}: {e}", exc_info=True)
            self._fail(f"Import failed: {e}")
        finally:
            reader.close()
            if owned:
                stream.close()
            session.close()

        return self.result

    def _check_reimport_policy(self, store):
        self._transition(ImportState.REIMPORT_POLICY_CHECK)
        code = self.options.translation_code

        if self.options.force:
            deleted = store.delete_translations(code)
            store.session.commit()
            self.result.translations_deleted = deleted
            return

        existing = store.count_translations(code)
        if not existing:
            return

        last_run = store.latest_run(code)
        if self.options.resume:
            logger.info(f"{code} has {existing} translations; resuming as requested")
            return
        if last_run is not None and last_run.status != ImportRun.STATUS_COMPLETED:
            logger.info(f"{code} has {existing} translations from an unfinished run ({last_run.status}); resuming")
            return
        raise DuplicateImportError(
            f"Translation '{code}' is already imported ({existing} verses). "
            f"Pass force=True to replace it or resume=True to re-sync it."
        )

    def _stream(self, reader, store):
        self._transition(ImportState.STREAMING)
        resolver = HierarchyResolver(store, self.options.work, self.options.lang)
        upserter = TranslationUpserter(store, self.options.lang, self.options.translation_code, self.options.source)

        batch = []
        for row in reader:
            self._drain_reader_errors(reader)
            self.result.rows_read += 1
            try:
                batch.append(self._normalize(row))
            except RowParseError as e:
                self._record_errors([e])
                continue
            if len(batch) >= self.options.batch_size:
                self._flush(batch, resolver, upserter, store)
                batch = []

        self._drain_reader_errors(reader)
        if batch:
            self._flush(batch, resolver, upserter, store)

    def _normalize(self, row):
        text = self.normalize_text(row.text)
        if not text:
            raise RowParseError("verse text is empty", line_number=row.line_number, raw=row.text)
        book_name = self.normalize_name(row.book_name)
        if len(book_name) > BOOK_NAME_LENGTH:
            raise RowParseError(f"book name is longer than {BOOK_NAME_LENGTH} characters",
                                line_number=row.line_number, raw=row.book_name)
        if len(row.source_key) > SOURCE_KEY_LENGTH:
            raise RowParseError(f"row id is longer than {SOURCE_KEY_LENGTH} characters",
                                line_number=row.line_number, raw=row.source_key)
        return replace(row, text=text, book_name=book_name)

    def _drain_reader_errors(self, reader):
        errors = reader.pop_errors()
        self.result.rows_read += len(errors)
        self._record_errors(errors)

    def _record_errors(self, errors):
        for error in errors:
            message = error.describe()
            logger.warning(message)
            self.result.errors.append(message)

    def _flush(self, batch, resolver, upserter, store):
        self._transition(ImportState.FLUSHING)

        plan = resolver.stage(batch)
        resolver.flush(plan)
        items = [(resolver.resolve(row), row) for row in batch]
        translations = upserter.stage(items)
        upserter.apply(translations)
        store.session.commit()
        # Ids live in the resolver cache; drop ORM objects so memory stays flat
        store.session.expunge_all()

        r = self.result
        r.books_created += len(plan.books)
        r.chapters_created += len(plan.chapters)
        r.verses_created += len(plan.verses)
        r.translations_inserted += translations.inserted
        r.translations_updated += translations.updated
        r.translations_unchanged += translations.unchanged
        logger.info(f"{self.options.translation_code}: flushed {len(batch)} rows "
                    f"(+{translations.inserted} new, {translations.updated} updated)")

        self._transition(ImportState.STREAMING)

    def _complete(self):
        r = self.result
        r.success = True
        r.message = (
            f"Imported {self.options.translation_code}: {r.translations_inserted} inserted, "
            f"{r.translations_updated} updated, {r.translations_unchanged} unchanged; "
            f"created {r.books_created} books, {r.chapters_created} chapters, {r.verses_created} verses"
        )
        if r.errors:
            r.message += f"; {len(r.errors)} rows skipped"
        self._transition(ImportState.COMPLETED)
        logger.info(r.message)


def run_import(csv_source, session_factory=None, normalizer=None, **options):
    """Validate ``options`` and run one import. Never raises for bad input."""
    try:
        import_options = ImportOptions(**options)
    except ValidationError as e:
        code = options.get('translation_code')
        errors = [f"{'.'.join(str(p) for p in err['loc']) or 'options'}: {err['msg']}" for err in e.errors()]
        logger.warning(f"Invalid import options: {errors}")
        return ImportResult(
            success=False,
            state=ImportState.FAILED.value,
            translation_code=code if isinstance(code, str) else None,
            message="Invalid import options: " + "; ".join(errors),
            errors=errors,
        )
    return ImportPipeline(import_options, session_factory=session_factory, normalizer=normalizer).run(csv_source)
