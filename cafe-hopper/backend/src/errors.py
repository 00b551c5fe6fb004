"""Error kinds raised by the cafe search pipeline."""

from __future__ import annotations


class CafeSearchError(Exception):
    kind = "error"


class ValidationError(CafeSearchError):
    """Malformed or insufficient request input."""

    kind = "validation"


class MappingError(ValidationError):
    """A single provider record could not become a Cafe. The record is dropped."""

    kind = "mapping"


class IntegrityError(CafeSearchError):
    """The provider broke its contract (e.g. a result without place_id)."""

    kind = "integrity"


class CollaboratorError(CafeSearchError):
    """Provider or store call failed."""

    kind = "collaborator"
