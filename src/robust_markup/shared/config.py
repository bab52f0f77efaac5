"""Configuration for markup loading and serialization.

A single immutable ``DocumentConfig`` replaces process-wide settings: it carries
the default charset, the doctype used for synthetic HTML documents and the debug
level, and is handed to every document wrapper when it is constructed.
"""

import codecs
import json
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Optional

DEFAULT_CHARSET = "UTF-8"
DEFAULT_DOCTYPE = (
    '<!DOCTYPE html PUBLIC "-//W3C//DTD HTML 4.01 Transitional//EN" '
    '"http://www.w3.org/TR/html4/loose.dtd">'
)

# Debug levels
DEBUG_OFF = 0
DEBUG_VERBOSE = 1
DEBUG_STRICT = 2


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class DocumentConfig:
    """Immutable settings consumed by the loader and the charset resolver.

    Attributes:
        default_charset: Charset used when neither the markup nor the caller
            names one.
        default_doctype: Doctype prepended to synthetic HTML fragment documents.
        debug: 0 (off), 1 (parser errors logged at DEBUG) or 2 (strict: parser
            errors logged at WARNING).
        enable_charset_detection: Verify declared and requested charsets against
            the actual bytes before re-encoding.
        xml_sniff_length: Number of leading characters searched for an XML
            declaration when no content type is given.
    """

    default_charset: str = DEFAULT_CHARSET
    default_doctype: str = DEFAULT_DOCTYPE
    debug: int = DEBUG_OFF
    enable_charset_detection: bool = True
    xml_sniff_length: int = 100

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.default_charset:
            raise ConfigValidationError(
                "default_charset cannot be empty", field_name="default_charset"
            )
        try:
            codecs.lookup(self.default_charset)
        except LookupError:
            raise ConfigValidationError(
                f"Unknown default_charset: {self.default_charset}",
                field_name="default_charset",
                suggestions=["Use a codec name such as 'UTF-8' or 'ISO-8859-1'"],
            ) from None
        if self.debug not in (DEBUG_OFF, DEBUG_VERBOSE, DEBUG_STRICT):
            raise ConfigValidationError(
                "debug must be 0, 1 or 2", field_name="debug"
            )
        if self.xml_sniff_length <= 0:
            raise ConfigValidationError(
                "xml_sniff_length must be > 0", field_name="xml_sniff_length"
            )

    @property
    def strict(self) -> bool:
        """Whether parser errors are surfaced instead of suppressed."""
        return self.debug >= DEBUG_STRICT

    def override(self, **kwargs: Any) -> "DocumentConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = DocumentConfig().override(default_charset="ISO-8859-1")
            >>> config.default_charset
            'ISO-8859-1'
        """
        unknown = set(kwargs) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigValidationError(
                f"Unknown configuration fields: {sorted(unknown)}"
            )
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def from_json(cls, json_str: str) -> "DocumentConfig":
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    # Preset factory methods
    @classmethod
    def default(cls) -> "DocumentConfig":
        """Return the shared default configuration."""
        return _DEFAULT_CONFIG

    @classmethod
    def strict_mode(cls) -> "DocumentConfig":
        """Create preset that surfaces every parser error."""
        return cls(debug=DEBUG_STRICT)

    @classmethod
    def lenient(cls) -> "DocumentConfig":
        """Create preset that trusts declared charsets and stays quiet."""
        return cls(debug=DEBUG_OFF, enable_charset_detection=False)


_DEFAULT_CONFIG = DocumentConfig()
