"""Database exceptions."""


class UnsupportedDotNotationError(ValueError):
    """Exception raised when an update expression targets a field through a dotted path.

    Nested path updates are not supported yet, so callers must rewrite the update with top-level field names.

    Attributes:
        field: The offending key, exactly as it appeared in the update expression.
    """

    def __init__(self, field: str):
        self.field = field
        super().__init__(f'Dot notation keys are not supported yet: "{field}"')


class UnsupportedSchemaError(TypeError):
    """Exception raised when a schema cannot be projected onto a subset of fields."""

    pass
