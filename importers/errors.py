class ScriptureImportError(Exception):
    """Base class for failures that end an import run."""


class SourceNotFoundError(ScriptureImportError):
    pass


class ImportConfigurationError(ScriptureImportError):
    pass


class HeaderNotFoundError(ImportConfigurationError):
    pass


class DuplicateImportError(ScriptureImportError):
    pass


class ImportLockedError(ScriptureImportError):
    pass


class RowParseError(Exception):
    """A single source row could not be turned into a verse; the run continues."""

    def __init__(self, message, line_number=None, raw=None):
        super().__init__(message)
        self.line_number = line_number
        self.raw = raw

    def describe(self):
        where = f"line {self.line_number}" if self.line_number is not None else "row"
        if self.raw is not None:
            return f"Failed to parse {where}: {self} | {self.raw}"
        return f"Failed to parse {where}: {self}"
