"""Custom exceptions for cargo-bounds."""


class BoundsError(Exception):
    """Base exception for all cargo-bounds errors."""


class InvalidRequirementError(BoundsError):
    """Raised when a version requirement string cannot be parsed."""


class ManifestError(BoundsError):
    """Raised when Cargo.toml cannot be read, parsed or written."""


class DependencyNotFoundError(BoundsError):
    """Raised when a dependency filter names a key missing from the manifest."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"dep {name} not found.")


class PinConflictError(BoundsError):
    """Raised when a dependency cannot be pinned to a requested version."""

    def __init__(self, name: str, version: str, reason: str):
        self.name = name
        self.version = version
        self.reason = reason
        super().__init__(f"cannot pin {name} to ={version}: {reason}")


class EmptyUniverseError(BoundsError):
    """Raised when no published version satisfies a declared range."""

    def __init__(self, name: str, req: str):
        self.name = name
        self.req = req
        super().__init__(f"no published version of {name} matches {req}")


class RegistryError(BoundsError):
    """Raised when the registry is unreachable or does not know a crate."""


class OracleSpawnError(BoundsError):
    """Raised when the check command itself cannot be launched."""

    def __init__(self, argv: list[str], reason: str):
        self.argv = argv
        self.reason = reason
        super().__init__(f"could not run {' '.join(argv)!r}: {reason}")
