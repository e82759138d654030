from __future__ import annotations


class BuilderError(Exception):
    pass


class StructuralError(BuilderError):
    """Operation targeted a row/column/field id that is not in the document."""


class ValidationError(BuilderError):
    """A local precondition failed (blank name, machine name collision, ...)."""


class PersistenceError(BuilderError):
    """Storage failure during save/load."""


class DanglingReferenceWarning(UserWarning):
    pass
