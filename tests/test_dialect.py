import io
import unittest

from pydantic import ValidationError

from importers.dialect import (
    BOOK_NUMBER,
    TEXT,
    Dialect,
    DialectReader,
    HEADER_MARKED_DIALECT,
    LEGACY_DIALECT,
    map_header,
    options_for_layout,
    parse_number,
    parse_verse,
)
from importers.errors import HeaderNotFoundError, ImportConfigurationError, RowParseError
from schemas.import_schemas import ImportOptions
from tests.support import ENGLISH_ROWS, TURKISH_ROWS, legacy_csv, plain_csv


def read_all(data, dialect):
    stream = io.BytesIO(data.encode('utf-8') if isinstance(data, str) else data)
    reader = DialectReader(stream, dialect)
    rows = list(reader)
    return rows, reader.pop_errors()


class TestLegacyLayout(unittest.TestCase):
    def test_preamble_skipped_and_rows_parsed(self):
        rows, errors = read_all(legacy_csv(TURKISH_ROWS), LEGACY_DIALECT)
        self.assertEqual(errors, [])
        self.assertEqual(len(rows), len(TURKISH_ROWS))
        first = rows[0]
        self.assertEqual(first.line_number, 8)
        self.assertEqual((first.book_number, first.chapter_number, first.verse_number), (1, 1, 1))
        self.assertEqual(first.book_name, "Yaratılış")
        self.assertEqual(first.source_key, "1001001")
        self.assertEqual(rows[-1].book_number, 40)

    def test_quoted_text_keeps_delimiters_and_newlines(self):
        data = '1;Genesis;1;1;1;"And God said; let there be\nlight"\n1;Genesis;1;1;2;"Next"\n'
        rows, errors = read_all(data, Dialect())
        self.assertEqual(errors, [])
        self.assertEqual(rows[0].text, "And God said; let there be\nlight")
        self.assertEqual(rows[1].line_number, 3)

    def test_doubled_quotes_inside_text(self):
        rows, _ = read_all('1;Genesis;1;1;3;"God said, ""Let there be light"""\n', Dialect())
        self.assertEqual(rows[0].text, 'God said, "Let there be light"')

    def test_unquoted_delimiters_in_trailing_text_are_rejoined(self):
        rows, errors = read_all('1;Genesis;1;1;1;In the beginning; God created\n', Dialect())
        self.assertEqual(errors, [])
        self.assertEqual(rows[0].text, "In the beginning; God created")

    def test_short_row_is_recorded_and_reading_continues(self):
        data = '1;Genesis;1;1\n2;Genesis;1;1;2;"And the earth"\n'
        rows, errors = read_all(data, Dialect())
        self.assertEqual(len(rows), 1)
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].line_number, 1)
        self.assertIn("expected 6 fields", str(errors[0]))
        self.assertEqual(errors[0].raw, "1;Genesis;1;1")

    def test_non_numeric_chapter(self):
        rows, errors = read_all('1;Genesis;1;one;1;"text"\n', Dialect())
        self.assertEqual(rows, [])
        self.assertIn("chapter is not a number", errors[0].describe())
        self.assertIn("line 1", errors[0].describe())

    def test_malformed_quoting_is_recorded(self):
        data = '1;Genesis;1;1;1;"abc"def\n1;Genesis;1;1;2;"ok"\n'
        rows, errors = read_all(data, Dialect())
        self.assertEqual([r.verse_number for r in rows], [2])
        self.assertEqual(len(errors), 1)
        self.assertIn("malformed CSV", str(errors[0]))
        self.assertEqual(errors[0].line_number, 1)
        self.assertEqual(errors[0].raw, '1;Genesis;1;1;1;"abc"def')
        self.assertIn('"abc"def', errors[0].describe())

    def test_malformed_multiline_record_keeps_every_line(self):
        data = '1;Genesis;1;1;1;"first\nsecond"x\n1;Genesis;1;1;2;"ok"\n'
        rows, errors = read_all(data, Dialect())
        self.assertEqual([r.verse_number for r in rows], [2])
        self.assertEqual(errors[0].raw, '1;Genesis;1;1;1;"first\nsecond"x')

    def test_blank_lines_skipped(self):
        rows, errors = read_all('\n1;Genesis;1;1;1;"a"\n\n;;;\n', Dialect())
        self.assertEqual(len(rows), 1)
        self.assertEqual(errors, [])

    def test_verse_range(self):
        rows, _ = read_all('1;Genesis;1;1;14-15;"combined"\n', Dialect())
        self.assertEqual(rows[0].verse_number, 14)
        self.assertEqual(rows[0].verse_range, "14-15")

    def test_text_stream_is_accepted(self):
        reader = DialectReader(io.StringIO('1;Genesis;1;1;1;"a"\n'), Dialect())
        self.assertEqual(len(list(reader)), 1)
        reader.close()

    def test_close_leaves_stream_open(self):
        stream = io.BytesIO(b'1;Genesis;1;1;1;"a"\n')
        reader = DialectReader(stream, Dialect())
        list(reader)
        reader.close()
        self.assertFalse(stream.closed)


class TestHeaderLayouts(unittest.TestCase):
    KJV = (
        "This Bible is in the public domain.\n"
        "Source: biblesupersearch.com\n"
        '"Verse ID","Book Name","Book Number","Chapter","Verse","Text"\n'
        '1001001,Genesis,1,1,1,"In the beginning God created the heaven and the earth."\n'
    )

    def test_header_marker_located_after_license_lines(self):
        dialect = Dialect(delimiter=',', has_header=True, header_marker='Verse ID')
        stream = io.BytesIO(self.KJV.encode('utf-8'))
        reader = DialectReader(stream, dialect).prepare()
        self.assertEqual(reader.header[0], "Verse ID")
        rows = list(reader)
        self.assertEqual(rows[0].line_number, 4)
        self.assertEqual(rows[0].source_key, "1001001")
        self.assertEqual(rows[0].book_name, "Genesis")

    def test_missing_marker_raises_before_any_row(self):
        dialect = Dialect(delimiter=',', header_marker='Verse ID')
        reader = DialectReader(io.BytesIO(plain_csv(ENGLISH_ROWS, ',')), dialect)
        with self.assertRaises(HeaderNotFoundError):
            reader.prepare()

    def test_empty_source_in_header_mode(self):
        with self.assertRaises(HeaderNotFoundError):
            DialectReader(io.BytesIO(b""), Dialect(has_header=True)).prepare()

    def test_reordered_columns_are_mapped_by_name(self):
        data = "Text;Verse;Chapter;Book Number\nIn the beginning;1;1;1\n"
        rows, errors = read_all(data, Dialect(has_header=True))
        self.assertEqual(errors, [])
        self.assertEqual((rows[0].book_number, rows[0].text), (1, "In the beginning"))
        self.assertEqual(rows[0].book_name, "")

    def test_utf8_bom_on_header(self):
        data = "\ufeffVerse ID;Book Name;Book Number;Chapter;Verse;Text\n1;Genesis;1;1;1;a\n"
        rows, _ = read_all(data, HEADER_MARKED_DIALECT)
        self.assertEqual(len(rows), 1)

    def test_header_missing_required_column(self):
        with self.assertRaises(ImportConfigurationError):
            map_header(["Verse ID", "Book Name", "Chapter", "Verse", "Text"])

    def test_map_header_positions(self):
        mapping = map_header(['"Verse ID"', "Book Name", "Book Number", "Chapter", "Verse", "Text"])
        self.assertEqual(mapping[BOOK_NUMBER], 2)
        self.assertEqual(mapping[TEXT], 5)


class TestFieldParsing(unittest.TestCase):
    def test_parse_number(self):
        self.assertEqual(parse_number(' "12" ', 'chapter'), 12)
        with self.assertRaises(RowParseError):
            parse_number("0", "chapter")
        with self.assertRaises(RowParseError):
            parse_number("x", "chapter")
        with self.assertRaises(RowParseError):
            parse_number("100000000000000000000", "chapter")
        self.assertEqual(parse_number(str(2 ** 31 - 1), "verse"), 2 ** 31 - 1)

    def test_parse_verse(self):
        self.assertEqual(parse_verse("3"), (3, None))
        self.assertEqual(parse_verse("14 - 15"), (14, "14-15"))
        with self.assertRaises(RowParseError):
            parse_verse("15-14")
        with self.assertRaises(RowParseError):
            parse_verse("1-99999999999")

    def test_out_of_range_row_is_recorded(self):
        data = '1;Genesis;1;100000000000000000000;1;"too far"\n1;Genesis;1;1;2;"ok"\n'
        rows, errors = read_all(data, Dialect())
        self.assertEqual([r.verse_number for r in rows], [2])
        self.assertIn("out of range", str(errors[0]))
        self.assertEqual(errors[0].line_number, 1)


class TestReaderConfiguration(unittest.TestCase):
    def test_unknown_encoding(self):
        reader = DialectReader(io.BytesIO(b'1;Genesis;1;1;1;"a"\n'), Dialect(encoding='no-such-codec'))
        with self.assertRaises(ImportConfigurationError):
            reader.prepare()

    def test_invalid_escapechar(self):
        reader = DialectReader(io.BytesIO(b'1;Genesis;1;1;1;"a"\n'), Dialect(escapechar='ab'))
        with self.assertRaises(ImportConfigurationError):
            reader.prepare()


class TestLayouts(unittest.TestCase):
    def test_legacy_preset(self):
        options = ImportOptions(**options_for_layout('legacy', lang='tr', translation_code='TR_TBS'))
        dialect = Dialect.from_options(options)
        self.assertEqual(dialect.skip_lines, 7)
        self.assertFalse(dialect.header_mode)

    def test_overrides_win_and_none_is_ignored(self):
        options = options_for_layout('header', delimiter=',', header_marker=None)
        self.assertEqual(options['delimiter'], ',')
        self.assertEqual(options['header_marker'], 'Verse ID')

    def test_unknown_layout(self):
        with self.assertRaises(ImportConfigurationError):
            options_for_layout('xml')

    def test_delimiter_alias(self):
        options = ImportOptions(lang='en', translation_code='EN_KJV', delimiter='tab')
        self.assertEqual(options.delimiter, '\t')

    def test_dialect_option_validation(self):
        ImportOptions(lang='en', translation_code='EN_KJV', escapechar='\\', encoding='cp1254')
        self.assertIsNone(ImportOptions(lang='en', translation_code='EN_KJV', escapechar=' ').escapechar)
        for bad in ({'encoding': 'no-such-codec'}, {'escapechar': 'ab'}, {'delimiter': '"'},
                    {'escapechar': ';'}):
            with self.subTest(**bad):
                with self.assertRaises(ValidationError):
                    ImportOptions(lang='en', translation_code='EN_KJV', **bad)


if __name__ == '__main__':
    unittest.main()
