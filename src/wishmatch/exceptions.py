"""
wishmatch Exception Hierarchy

Normal operation of the engine does not raise: unknown ids, actions without
a handler and out-of-context actions all surface as ``None`` or ``[]``.
The exceptions below cover API misuse and the file plumbing around the
engine (configuration, catalogs, saved state).

Usage::

    from wishmatch.exceptions import WishmatchError, InvalidMagicWordError

    try:
        engine.register({"triggers": {"not": "a string"}})
    except InvalidMagicWordError:
        print("Triggers must be strings or numbers.")
    except WishmatchError as exc:
        print(f"wishmatch error: {exc}")
"""


class WishmatchError(Exception):
    """Base exception for all wishmatch errors."""


class InvalidMagicWordError(WishmatchError, TypeError):
    """A trigger or query fragment is an object instead of a primitive.

    Inherits from ``TypeError`` since it signals a wrongly shaped argument.
    """


class ConfigError(WishmatchError, ValueError):
    """Configuration is invalid (e.g. empty default context label)."""


class CatalogError(WishmatchError):
    """An action catalog file is missing or malformed."""


class SnapshotError(WishmatchError):
    """A saved engine state file could not be read or does not parse."""
