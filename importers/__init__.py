from .dialect import Dialect, DialectReader, LEGACY_DIALECT, HEADER_MARKED_DIALECT, options_for_layout
from .errors import (
    ScriptureImportError,
    SourceNotFoundError,
    ImportConfigurationError,
    HeaderNotFoundError,
    DuplicateImportError,
    ImportLockedError,
    RowParseError,
)
from .locking import acquire_import_lock, release_import_lock
from .normalizer import TextNormalizer, normalize
from .pipeline import ImportPipeline, ImportState, run_import

__all__ = [
    'Dialect',
    'DialectReader',
    'LEGACY_DIALECT',
    'HEADER_MARKED_DIALECT',
    'options_for_layout',
    'ScriptureImportError',
    'SourceNotFoundError',
    'ImportConfigurationError',
    'HeaderNotFoundError',
    'DuplicateImportError',
    'ImportLockedError',
    'RowParseError',
    'acquire_import_lock',
    'release_import_lock',
    'TextNormalizer',
    'normalize',
    'ImportPipeline',
    'ImportState',
    'run_import',
]
