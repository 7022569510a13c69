"""Codec options, loadable from a JSON file."""

from dataclasses import dataclass, fields, replace
from json import load
from pathlib import Path

FILE_ID = "W3ER"
SUPPORTED_VERSIONS = (11,)


@dataclass(frozen=True)
class CodecOptions:
    """Settings shared by the terrain encoder and decoder.

    Attributes:
        strict: Reject values that do not fit their bit width instead of
            masking them.
        validate_header: Check the file tag and version on decode.
        supported_versions: Versions accepted when validating the header.
        initial_capacity: Starting size of the write buffer, in bytes.
    """
    strict: bool = False
    validate_header: bool = True
    supported_versions: tuple[int, ...] = SUPPORTED_VERSIONS
    initial_capacity: int = 1024

    def __post_init__(self) -> None:
        if self.initial_capacity <= 0:
            raise ValueError("initial_capacity must be > 0")
        if not self.supported_versions:
            raise ValueError("supported_versions must not be empty")

    @classmethod
    def from_dict(cls, values: dict) -> "CodecOptions":
        if not isinstance(values, dict):
            raise ValueError("Codec options must be a JSON object")
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown codec options: {', '.join(sorted(unknown))}")
        values = dict(values)
        if "supported_versions" in values:
            values["supported_versions"] = tuple(int(v) for v in values["supported_versions"])
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> "CodecOptions":
        """Loads options from a JSON object of field overrides.

        Args:
            path: Path to the JSON file.

        Returns:
            CodecOptions: Defaults updated with the file's values.
        """
        with Path(path).open("r", encoding="utf-8") as f:
            return cls.from_dict(load(f))

    def with_overrides(self, **kwargs) -> "CodecOptions":
        return replace(self, **kwargs)


DEFAULT_OPTIONS = CodecOptions()
