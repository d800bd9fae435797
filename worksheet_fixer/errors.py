"""Terminal errors raised while repairing a worksheet archive."""


class WorksheetFixerError(Exception):
    """Base class for errors that abort a repair."""


class FatalStructure(WorksheetFixerError):
    """Archive lacks what is needed to rebuild a worksheet."""


class MalformedContainer(WorksheetFixerError):
    """Input bytes are not a readable zip archive."""


class EncodeFailure(WorksheetFixerError):
    """Writing the repaired archive failed."""
