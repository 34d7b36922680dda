"""Errors reported through pool handles when a resolver cannot be invoked."""


class InvalidResolverError(TypeError):
    """Registered value for a key is missing or not callable."""

    label = "Operation resolver"

    def __init__(self, resolver: object, key: object) -> None:
        super().__init__(f"{self.label} {resolver} is not a function for key {key}")
        self.resolver = resolver
        self.key = key


class InvalidCurriedResolverError(InvalidResolverError):
    """Curry producer returned something that is not callable."""

    label = "Curried operation resolver"
