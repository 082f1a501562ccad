# scripts/import_scripture.py
import argparse
import logging
import sys
from pathlib import Path

# Add the parent directory to the Python path properly
current_dir = Path(__file__).resolve().parent
backend_dir = current_dir.parent
sys.path.insert(0, str(backend_dir))

from config import Config  # noqa: E402
from database import SessionLocal, get_db_session, init_db  # noqa: E402
from importers import ImportConfigurationError, options_for_layout, release_import_lock, run_import  # noqa: E402

logger = logging.getLogger('import_scripture')


def build_parser():
    parser = argparse.ArgumentParser(
        description="Import a scripture translation CSV into the Book/Chapter/Verse/Translation tables"
    )
    parser.add_argument("csv_path", nargs="?", type=Path, help="Source CSV file")
    parser.add_argument("--lang", help="Language code of the translation, e.g. tr, en, ar")
    parser.add_argument("--code", dest="translation_code", help="Translation code, e.g. TR_TBS, EN_KJV")
    parser.add_argument("--source", default=None, help="Provenance label stored with every verse")
    parser.add_argument("--work", choices=["Bible", "Quran"], default=None)
    parser.add_argument("--layout", choices=["legacy", "header", "generic"], default="generic",
                        help="Preset for known source layouts (default: generic)")
    parser.add_argument("--delimiter", default=None, help="Field delimiter (';', ',', 'tab', ...)")
    parser.add_argument("--header", dest="has_header", action="store_true", default=None,
                        help="Source has a header row")
    parser.add_argument("--header-marker", default=None,
                        help="First-field text identifying the header row, e.g. 'Verse ID'")
    parser.add_argument("--skip-lines", dest="skip_lines_before_header", type=int, default=None,
                        help="Preamble lines to skip before data/header search")
    parser.add_argument("--encoding", default=None, help="Source encoding (default: utf-8-sig)")
    parser.add_argument("--unwrap-brackets", action="store_true", default=None,
                        help="Turn [inserted] words into plain words")
    parser.add_argument("--batch-size", type=int, default=None,
                        help=f"Rows per flush (default: {Config.IMPORT_BATCH_SIZE})")
    parser.add_argument("--force", action="store_true", default=None,
                        help="Delete this translation code's verses before importing")
    parser.add_argument("--resume", action="store_true", default=None,
                        help="Re-sync an existing translation code instead of refusing")
    parser.add_argument("--init-db", action="store_true", help="Create tables before importing")
    parser.add_argument("--unlock", metavar="CODE", help="Release a stale import lock and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if args.init_db:
        init_db()

    if args.unlock:
        with get_db_session(SessionLocal) as db:
            released = release_import_lock(db, args.unlock)
        print(f"Lock for {args.unlock} {'released' if released else 'was not held'}")
        return 0

    if args.csv_path is None:
        parser.error("csv_path is required unless --unlock is given")

    try:
        options = options_for_layout(
            args.layout,
            lang=args.lang,
            translation_code=args.translation_code,
            source=args.source,
            work=args.work,
            delimiter=args.delimiter,
            has_header=args.has_header,
            header_marker=args.header_marker,
            skip_lines_before_header=args.skip_lines_before_header,
            encoding=args.encoding,
            unwrap_brackets=args.unwrap_brackets,
            batch_size=args.batch_size,
            force=args.force,
            resume=args.resume,
        )
    except ImportConfigurationError as e:
        parser.error(str(e))

    print(f"Reading CSV file from: {args.csv_path}")
    result = run_import(args.csv_path, **options)

    print(f"\n{result.message}")
    if result.errors:
        print(f"\n{len(result.errors)} rows could not be imported:")
        for error in result.errors[:20]:
            print(f"  {error}")
        if len(result.errors) > 20:
            print(f"  ... and {len(result.errors) - 20} more")
    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
