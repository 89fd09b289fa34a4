"""
Ledger error taxonomy.

Every rejected mutation raises exactly one of these. They subclass ValueError
so callers at the edges (CLI, REST relay) can treat them as validation
failures. None of them is retryable: the submitter fixes the input and
resubmits.
"""


class LedgerError(ValueError):
    kind = "LedgerError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)


class AlreadyRegistered(LedgerError):
    kind = "AlreadyRegistered"


class InvalidRole(LedgerError):
    kind = "InvalidRole"


class NotAPatient(LedgerError):
    kind = "NotAPatient"


class NotADoctor(LedgerError):
    kind = "NotADoctor"


class NotAPharmacist(LedgerError):
    kind = "NotAPharmacist"


class NotAnInsurer(LedgerError):
    kind = "NotAnInsurer"


class NotAuthorizedDoctor(LedgerError):
    kind = "NotAuthorizedDoctor"


class InvalidState(LedgerError):
    kind = "InvalidState"


class InvalidMedication(LedgerError):
    kind = "InvalidMedication"


class InvalidContentId(LedgerError):
    kind = "InvalidContentId"


class NotFound(LedgerError):
    kind = "NotFound"


class StorageError(RuntimeError):
    """The content store could not pin a file. Not a ledger validation failure."""
