"""Error taxonomy shared by the stores and the HTTP layer."""


class MenuError(Exception):
    status_code = 500


class ValidationError(MenuError):
    """A required field is missing or a field has an invalid value."""

    status_code = 400


class NotFound(MenuError):
    """No record matches an id or name, or a referenced parent is missing."""

    status_code = 404

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"{entity} not found")


class StoreError(MenuError):
    """The document store is unreachable or a write could not be completed."""


def describe_errors(errors) -> str:
    """Flatten pydantic error dicts into "loc: msg; loc: msg"."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)
